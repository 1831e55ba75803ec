import pytest

from polar_weight_sync.csvlog import clean_log, read_daily_entries, read_raw_log, write_cleaned
from polar_weight_sync.models import DailyEntry

RAW = (
    "// exported from the scale app\n"
    "// second comment line\n"
    '"Date","Weight (kg)","Note"\n'
    '"2025-03-01 08:00","70.2","before breakfast, fasted"\n'
    '"2025-03-01 20:00","70.5",""\n'
    '"2025-03-02 08:00","71.0"\n'
    '"2025-03-02 09:00","--"\n'
    "\n"
)


def test_read_raw_log_skips_comments_header_and_bad_rows(tmp_path):
    src = tmp_path / "weight.csv"
    src.write_text(RAW, encoding="utf-8")

    samples = read_raw_log(src)

    assert [(s.timestamp, s.weight_kg) for s in samples] == [
        ("2025-03-01 08:00", 70.2),
        ("2025-03-01 20:00", 70.5),
        ("2025-03-02 08:00", 71.0),
    ]


def test_clean_log_writes_one_row_per_day(tmp_path):
    src = tmp_path / "weight.csv"
    dst = tmp_path / "out" / "weight_cleaned.csv"
    src.write_text(RAW, encoding="utf-8")

    assert clean_log(src, dst) == 2
    assert dst.read_text(encoding="utf-8") == "Date,Weight (kg)\n2025-03-02,71.00\n2025-03-01,70.50\n"


def test_read_daily_entries_round_trip(tmp_path):
    path = tmp_path / "weight_cleaned.csv"
    write_cleaned(path, [DailyEntry("2025-03-02", 71.0), DailyEntry("2025-03-01", 70.5)])

    assert read_daily_entries(path) == [DailyEntry("2025-03-02", 71.0), DailyEntry("2025-03-01", 70.5)]


def test_read_daily_entries_skips_blank_and_invalid(tmp_path):
    path = tmp_path / "weight_cleaned.csv"
    path.write_text("Date,Weight (kg)\n2025-03-02,71.00\n\n2025-03-01,abc\n", encoding="utf-8")

    assert read_daily_entries(path) == [DailyEntry("2025-03-02", 71.0)]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_raw_log(tmp_path / "nope.csv")
    with pytest.raises(FileNotFoundError):
        read_daily_entries(tmp_path / "nope.csv")


def test_read_daily_entries_skips_rows_with_bad_dates(tmp_path):
    path = tmp_path / "weight_cleaned.csv"
    path.write_text(
        "Date,Weight (kg)\n2025-03-02,71.00\n07.03.2025,70.00\n2025-02-30,70.10\nyesterday,69.90\n",
        encoding="utf-8",
    )

    assert read_daily_entries(path) == [DailyEntry("2025-03-02", 71.0)]
