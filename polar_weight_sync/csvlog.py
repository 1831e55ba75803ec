from __future__ import annotations

import csv
import datetime as dt
from pathlib import Path
from typing import Iterable, List

import structlog

from . import CLEANED_HEADER
from .aggregate import parse_weight, reduce_daily
from .models import DailyEntry, MeasurementSample

logger = structlog.get_logger()

COMMENT_PREFIX = "//"


def _data_lines(path: Path) -> List[str]:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    text = path.read_text(encoding="utf-8-sig")
    lines = [ln for ln in text.splitlines() if not ln.startswith(COMMENT_PREFIX)]
    # first non-comment line is the header
    return [ln for ln in lines[1:] if ln.strip()]


def read_raw_log(path: str | Path) -> List[MeasurementSample]:
    """
    Raw scale export: '"<timestamp>","<weight>"[,...]' per row.

    Leading '//' comment lines and the header are ignored, quoted commas are
    fine, rows without a numeric weight are skipped.
    """
    path = Path(path)
    lines = _data_lines(path)
    samples: List[MeasurementSample] = []
    for row in csv.reader(lines):
        if len(row) < 2:
            continue
        weight = parse_weight(row[1].strip())
        if weight is None:
            continue
        samples.append(MeasurementSample(timestamp=row[0].strip(), weight_kg=weight))
    logger.info("raw_log_read", path=str(path), rows=len(lines), samples=len(samples))
    return samples


def write_cleaned(path: str | Path, entries: Iterable[DailyEntry]) -> int:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(CLEANED_HEADER)
        for e in entries:
            writer.writerow(e.as_row())
            count += 1
    logger.info("cleaned_log_written", path=str(path), days=count)
    return count


def read_daily_entries(path: str | Path) -> List[DailyEntry]:
    path = Path(path)
    entries: List[DailyEntry] = []
    for row in csv.reader(_data_lines(path)):
        if len(row) < 2:
            continue
        date = row[0].strip()
        try:
            dt.datetime.strptime(date, "%Y-%m-%d")
        except ValueError:
            logger.warning("cleaned_row_bad_date", path=str(path), date=date)
            continue
        weight = parse_weight(row[1].strip())
        if weight is None:
            continue
        entries.append(DailyEntry(date=date, weight_kg=weight))
    logger.info("cleaned_log_read", path=str(path), entries=len(entries))
    return entries


def clean_log(input_path: str | Path, output_path: str | Path) -> int:
    """Raw log in, one row per day out (newest first). Returns the number of days."""
    entries = reduce_daily(read_raw_log(input_path), descending=True)
    return write_cleaned(output_path, entries)
