from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

# A browser session is just the cookie list the browser hands back
SessionCookie = Dict[str, Any]
Session = List[SessionCookie]


@dataclass(frozen=True)
class MeasurementSample:
    timestamp: str
    weight_kg: float


@dataclass(frozen=True)
class DailyEntry:
    date: str
    weight_kg: float

    def as_row(self) -> List[str]:
        return [self.date, f"{self.weight_kg:.2f}"]


@dataclass(frozen=True)
class FormContext:
    submit_url: str
    csrf_token: str
    user_id: str


class UpdateOutcome(str, Enum):
    SUCCESS = "success"
    AUTH_REQUIRED = "auth_required"
    FALLBACK = "fallback"
    FAILURE = "failure"


@dataclass
class BatchResult:
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    failed_dates: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.successful + self.failed + self.skipped
