from __future__ import annotations

import asyncio
from typing import Any, Iterable, Optional

import structlog

from .auth import SessionAuthenticator
from .models import BatchResult, DailyEntry, UpdateOutcome
from .updater import WeightUpdater

logger = structlog.get_logger()


class BatchOrchestrator:
    """
    Uploads daily entries oldest first, one at a time, on a single page.

    The saved cookies are tried as-is. The first entry that fails before we
    have logged in during this run triggers one login and a retry of that same
    entry; later failures are just counted. If the login itself fails, or Polar
    still sends us to the login page after it, there is no point going on: the
    remaining entries are counted as skipped.
    """

    def __init__(
        self,
        updater: WeightUpdater,
        authenticator: SessionAuthenticator,
        *,
        delay: Optional[float] = None,
        authenticated: bool = False,
    ):
        self.updater = updater
        self.authenticator = authenticator
        self.delay = updater.settings.REQUEST_DELAY_SECONDS if delay is None else delay
        self.authenticated = authenticated

    async def _attempt(self, page: Any, entry: DailyEntry) -> UpdateOutcome:
        try:
            return await self.updater.update(page, entry.weight_kg, entry.date)
        except Exception as e:  # noqa: BLE001
            logger.error("entry_failed", date=entry.date, error=str(e), error_type=type(e).__name__)
            return UpdateOutcome.FAILURE

    async def run(self, page: Any, entries: Iterable[DailyEntry]) -> BatchResult:
        ordered = sorted(entries, key=lambda e: e.date)
        result = BatchResult()

        for i, entry in enumerate(ordered):
            if i:
                await asyncio.sleep(self.delay)
            logger.info("entry_processing", index=i + 1, total=len(ordered), date=entry.date, weight=entry.weight_kg)

            outcome = await self._attempt(page, entry)
            if outcome is not UpdateOutcome.SUCCESS and not self.authenticated:
                logger.info("entry_failed_before_login", date=entry.date, outcome=outcome.value)
                if not await self.authenticator.authenticate(page):
                    result.failed += 1
                    result.failed_dates.append(entry.date)
                    result.skipped = len(ordered) - i - 1
                    logger.error("authentication_failed_batch_stopped", skipped=result.skipped)
                    return result
                self.authenticated = True
                outcome = await self._attempt(page, entry)

            if outcome is UpdateOutcome.AUTH_REQUIRED:
                # already logged in once this run and still bounced to login
                result.failed += 1
                result.failed_dates.append(entry.date)
                result.skipped = len(ordered) - i - 1
                logger.error("session_rejected_batch_stopped", date=entry.date, skipped=result.skipped)
                return result

            if outcome is UpdateOutcome.SUCCESS:
                result.successful += 1
            else:
                result.failed += 1
                result.failed_dates.append(entry.date)
                logger.warning("entry_not_updated", date=entry.date, outcome=outcome.value)

        logger.info("batch_done", successful=result.successful, failed=result.failed, skipped=result.skipped)
        return result
