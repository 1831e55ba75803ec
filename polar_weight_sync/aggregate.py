from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Optional

import structlog

from .models import DailyEntry, MeasurementSample
from .utils import round_2dp

logger = structlog.get_logger()

_DATE_SPLIT = re.compile(r"[ T]")


def date_part(timestamp: str) -> str:
    """'2025-03-01 08:00' -> '2025-03-01'."""
    return _DATE_SPLIT.split(timestamp.strip().strip('"'), maxsplit=1)[0]


def parse_weight(value: Any) -> Optional[float]:
    try:
        w = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(w) or math.isinf(w):
        return None
    return w


def reduce_daily(samples: Iterable[MeasurementSample], descending: bool = True) -> List[DailyEntry]:
    """
    Keep the last measurement of each calendar day.

    "Last" means the greatest timestamp string, compared as text; for equal
    timestamps the later sample wins. Weights that are not numbers are dropped.
    Output weights carry two decimals; the upload rounds again to one.
    """
    latest: Dict[str, tuple[str, float]] = {}
    skipped = 0
    for s in samples:
        weight = parse_weight(s.weight_kg)
        if weight is None:
            skipped += 1
            continue
        ts = s.timestamp.strip().strip('"')
        day = date_part(ts)
        if not day:
            skipped += 1
            continue
        current = latest.get(day)
        if current is None or ts >= current[0]:
            latest[day] = (ts, weight)

    if skipped:
        logger.info("samples_skipped", count=skipped)

    days = sorted(latest, reverse=descending)
    return [DailyEntry(date=d, weight_kg=round_2dp(latest[d][1])) for d in days]  # type: ignore[arg-type]
