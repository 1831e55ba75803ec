from __future__ import annotations

import datetime as dt
import time
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Iterator, Optional

import pytz
import structlog
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import get_settings

logger = structlog.get_logger()


def get_tz() -> pytz.BaseTzInfo:
    return pytz.timezone(get_settings().TZ)


def today(tz: Optional[dt.tzinfo] = None) -> dt.date:
    return dt.datetime.now(tz or get_tz()).date()


def iso_date(d: dt.date | dt.datetime) -> str:
    if isinstance(d, dt.datetime):
        d = d.date()
    return d.isoformat()


def _quantize(value: Any, exp: str) -> Optional[float]:
    if value is None:
        return None
    try:
        q = Decimal(str(value)).quantize(Decimal(exp), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None
    return float(q)


def round_2dp(value: Optional[float]) -> Optional[float]:
    return _quantize(value, "0.01")


def round_1dp(value: Optional[float | str]) -> Optional[float]:
    """Round to tenths, half away from zero (72.35 -> 72.4, -72.35 -> -72.4)."""
    return _quantize(value, "0.1")


def _date_parts(value: str | dt.date | dt.datetime) -> tuple[int, int, int]:
    if isinstance(value, dt.datetime):
        return value.year, value.month, value.day
    if isinstance(value, dt.date):
        return value.year, value.month, value.day
    # "2025-03-27" or "2025-03-27 08:00"; split by hand so no tz conversion can shift the day
    head = value.strip().split(" ")[0].split("T")[0]
    parts = head.split("-")
    if len(parts) != 3:
        raise ValueError(f"Not a YYYY-MM-DD date: {value!r}")
    year, month, day = (int(p) for p in parts)
    dt.date(year, month, day)  # validates ranges
    return year, month, day


def format_flow_date(value: str | dt.date | dt.datetime) -> str:
    """DD.MM.YYYY, the format Polar Flow uses in day URLs and form posts."""
    year, month, day = _date_parts(value)
    return f"{day:02d}.{month:02d}.{year}"


def parse_flow_date(value: str) -> dt.date:
    day, month, year = (int(p) for p in value.split("."))
    return dt.date(year, month, day)


def redact(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[:4] + "…" if len(value) > 8 else "***"


@contextmanager
def timed(label: str, **context: Any) -> Iterator[None]:
    start = time.perf_counter()
    logger.info("timing_started", label=label, **context)
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info("timing_completed", label=label, elapsed_ms=elapsed_ms, **context)


def retry_backoff(
    max_attempts: int = 5,
    base: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Any]], Any]:
    def _before_log(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retrying",
            attempt=retry_state.attempt_number,
            error=str(exc) if exc else None,
        )

    def decorator(fn: Callable[..., Any]) -> Any:
        return retry(
            reraise=True,
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=base, min=base, max=base * 8),
            retry=retry_if_exception_type(retry_on),
            before=_before_log,
        )(fn)

    return decorator
