from polar_weight_sync.aggregate import date_part, parse_weight, reduce_daily
from polar_weight_sync.models import DailyEntry, MeasurementSample


def _samples(*rows):
    return [MeasurementSample(timestamp=ts, weight_kg=w) for ts, w in rows]


def test_latest_sample_per_day_descending():
    samples = _samples(
        ("2025-03-01 08:00", 70.2),
        ("2025-03-01 20:00", 70.5),
        ("2025-03-02 08:00", 71.0),
    )
    assert reduce_daily(samples) == [
        DailyEntry("2025-03-02", 71.0),
        DailyEntry("2025-03-01", 70.5),
    ]
    assert [e.as_row() for e in reduce_daily(samples)] == [["2025-03-02", "71.00"], ["2025-03-01", "70.50"]]


def test_input_order_does_not_matter():
    samples = _samples(
        ("2025-03-01 20:00", 70.5),
        ("2025-03-02 08:00", 71.0),
        ("2025-03-01 08:00", 70.2),
    )
    assert reduce_daily(samples)[1] == DailyEntry("2025-03-01", 70.5)


def test_ascending_order_on_request():
    samples = _samples(("2025-03-02 08:00", 71.0), ("2025-03-01 08:00", 70.2))
    assert [e.date for e in reduce_daily(samples, descending=False)] == ["2025-03-01", "2025-03-02"]


def test_equal_timestamps_last_one_wins():
    samples = _samples(("2025-03-01 08:00", 70.2), ("2025-03-01 08:00", 70.4))
    assert reduce_daily(samples) == [DailyEntry("2025-03-01", 70.4)]


def test_unparsable_weights_are_dropped():
    samples = _samples(
        ("2025-03-01 08:00", "n/a"),
        ("2025-03-01 07:00", 70.1),
        ("2025-03-03 07:00", float("nan")),
    )
    assert reduce_daily(samples) == [DailyEntry("2025-03-01", 70.1)]


def test_two_decimal_rounding():
    assert reduce_daily(_samples(("2025-03-01 08:00", 70.456)))[0].weight_kg == 70.46


def test_reducing_cleaned_output_is_idempotent():
    samples = _samples(
        ("2025-03-01 08:00", 70.2),
        ("2025-03-01 20:00", 70.555),
        ("2025-03-02 08:00", 71.0),
        ("2025-03-04T06:30:00", 69.9),
    )
    first = reduce_daily(samples)
    again = reduce_daily(MeasurementSample(timestamp=e.date, weight_kg=e.weight_kg) for e in first)
    assert {(e.date, e.weight_kg) for e in again} == {(e.date, e.weight_kg) for e in first}


def test_date_part_and_parse_weight():
    assert date_part('"2025-03-01 08:00"') == "2025-03-01"
    assert date_part("2025-03-01T08:00:00") == "2025-03-01"
    assert parse_weight(" 70.2 ") == 70.2
    assert parse_weight("") is None
    assert parse_weight(None) is None
