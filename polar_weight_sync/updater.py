from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any, Dict, Optional

import structlog
from playwright.async_api import Error as PlaywrightError

from . import site_selectors as sel
from .browser import (
    first_match,
    goto,
    is_auth_url,
    on_auth_domain,
    settle_load_state,
    wait_for_navigation,
    wait_optional,
)
from .config import Settings, get_settings
from .errors import (
    AuthenticationRequired,
    ElementNotFoundError,
    PolarSyncError,
    StaleTokenError,
    TransientNetworkError,
)
from .form_context import FormContextCache, day_url
from .models import FormContext, UpdateOutcome
from .utils import format_flow_date, round_1dp, timed, today

logger = structlog.get_logger()

DIRECT_SUBMIT_TIMEOUT_MS = 15_000
DAY_PAGE_TIMEOUT_MS = 20_000
FORM_WAIT_TIMEOUT_MS = 10_000
SAVE_NAVIGATION_TIMEOUT_MS = 15_000
# how long a save click gets to start a navigation before we treat it as an in-place save
SAVE_NAVIGATION_GRACE_S = 2.0

DIRECT_HEADERS = {"Accept": "text/html,application/xhtml+xml,application/xml"}


def direct_payload(context: FormContext, weight: float, day: str | dt.date) -> Dict[str, str]:
    return {
        "csrfToken": context.csrf_token,
        "userId": context.user_id,
        "date": format_flow_date(day),
        "weight": f"{weight:.1f}",
        "feeling": "",
        "note": "",
    }


class WeightUpdater:
    """
    Writes one day's weight to Polar Flow.

    Two ways in:

    - direct: POST the day form ourselves, using the action URL and CSRF token
      cached in ``form_cache``. One page visit per run instead of one per day.
    - dom: open the day page, fill the weight input, press save, read it back.

    The direct path is tried first unless DISABLE_DIRECT_API is set. Anything
    short of a 2xx or a login redirect there falls through to the dom path.
    A login redirect on either path (the day page, or the direct POST landing
    on the login page) ends the call with AUTH_REQUIRED, retrying after a
    fresh login is the caller's job.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        form_cache: Optional[FormContextCache] = None,
        settle_delay: Optional[float] = None,
    ):
        self.settings = settings or get_settings()
        self.form_cache = form_cache or FormContextCache(self.settings.POLAR_FLOW_URL, self.settings.POLAR_AUTH_URL)
        self.direct_enabled = not self.settings.DISABLE_DIRECT_API
        self.settle_delay = self.settings.SETTLE_DELAY_SECONDS if settle_delay is None else settle_delay

    async def update_weight(self, page: Any, weight: float | str, day: str | dt.date | None = None) -> bool:
        return (await self.update(page, weight, day)) is UpdateOutcome.SUCCESS

    async def update(self, page: Any, weight: float | str, day: str | dt.date | None = None) -> UpdateOutcome:
        if day is None:
            day = today()
        rounded = round_1dp(weight)
        if rounded is None:
            logger.error("weight_invalid", weight=weight)
            return UpdateOutcome.FAILURE
        try:
            date_str = format_flow_date(day)
        except ValueError as e:
            logger.error("date_invalid", date=str(day), error=str(e))
            return UpdateOutcome.FAILURE

        if self.direct_enabled:
            outcome = await self.try_direct(page, rounded, day)
            if outcome in (UpdateOutcome.SUCCESS, UpdateOutcome.AUTH_REQUIRED):
                return outcome
            logger.info("falling_back_to_page_navigation", date=date_str)

        return await self.try_dom(page, rounded, day)

    # --------------------------- direct ---------------------------

    async def try_direct(self, page: Any, weight: float, day: str | dt.date) -> UpdateOutcome:
        date_str = format_flow_date(day)
        with timed("direct_weight_update", date=date_str, weight=weight):
            try:
                context = await self.form_cache.ensure(page, day)
            except AuthenticationRequired:
                logger.info("not_authenticated", path="direct")
                return UpdateOutcome.AUTH_REQUIRED
            except (TransientNetworkError, PlaywrightError) as e:
                logger.warning("form_context_failed", error=str(e))
                return UpdateOutcome.FALLBACK

            if context is None:
                return UpdateOutcome.FALLBACK

            payload = direct_payload(context, weight, day)
            try:
                response = await self._submit(page, context, payload)
            except StaleTokenError as e:
                logger.warning("direct_submit_forbidden", error=str(e))
                self.form_cache.invalidate()
                return UpdateOutcome.FALLBACK
            except TransientNetworkError as e:
                logger.warning("direct_submit_error", error=str(e))
                return UpdateOutcome.FALLBACK

            status = response.status
            if is_auth_url(response.url, self.settings.POLAR_AUTH_URL):
                # the POST was bounced to the login page, nothing was saved
                logger.info("not_authenticated", path="direct", status=status)
                self.form_cache.invalidate()
                return UpdateOutcome.AUTH_REQUIRED

            if 200 <= status < 300:
                logger.info("weight_update_direct_ok", date=date_str, weight=weight, status=status)
                return UpdateOutcome.SUCCESS

            logger.warning("direct_submit_rejected", date=date_str, status=status)
            return UpdateOutcome.FALLBACK

    async def _submit(self, page: Any, context: FormContext, payload: Dict[str, str]) -> Any:
        # page.request shares the browser context's cookie jar
        try:
            response = await page.request.post(
                context.submit_url,
                form=payload,
                headers=DIRECT_HEADERS,
                timeout=DIRECT_SUBMIT_TIMEOUT_MS,
            )
        except PlaywrightError as e:
            raise TransientNetworkError(str(e)) from e
        if response.status == 403:
            raise StaleTokenError(f"403 from {context.submit_url}")
        return response

    # --------------------------- dom ---------------------------

    async def try_dom(self, page: Any, weight: float, day: str | dt.date) -> UpdateOutcome:
        date_str = format_flow_date(day)
        with timed("dom_weight_update", date=date_str, weight=weight):
            try:
                return await self._dom_update(page, weight, day)
            except AuthenticationRequired:
                logger.info("not_authenticated", path="dom")
                return UpdateOutcome.AUTH_REQUIRED
            except (PolarSyncError, PlaywrightError) as e:
                logger.error("weight_update_failed", date=date_str, error=str(e), error_type=type(e).__name__)
                return UpdateOutcome.FAILURE

    async def _dom_update(self, page: Any, weight: float, day: str | dt.date) -> UpdateOutcome:
        url = day_url(self.settings.POLAR_FLOW_URL, day)
        logger.info("day_page_open", url=url)
        await goto(page, url, DAY_PAGE_TIMEOUT_MS)

        if on_auth_domain(page, self.settings.POLAR_AUTH_URL):
            raise AuthenticationRequired(f"redirected to {page.url}")

        await wait_optional(page, sel.DAILY_FORM, FORM_WAIT_TIMEOUT_MS)
        if await page.query_selector(sel.DAILY_FORM) is None:
            raise ElementNotFoundError("Could not locate weight input form")

        await wait_optional(page, sel.WEIGHT_INPUT, FORM_WAIT_TIMEOUT_MS)
        field = await first_match(page, sel.WEIGHT_INPUT_CHAIN)
        if field is None:
            raise ElementNotFoundError("Could not find weight input field")

        value = f"{weight:.1f}"
        await field.fill(value)

        if not await self._save(page):
            logger.error("save_control_missing", url=url)
            return UpdateOutcome.FAILURE

        await asyncio.sleep(self.settle_delay)

        current = await self._read_weight(page)
        logger.info("weight_after_save", expected=value, actual=current)
        if current is not None and current == float(value):
            logger.info("weight_update_ok", date=format_flow_date(day), weight=weight)
            return UpdateOutcome.SUCCESS

        logger.warning("weight_verification_failed", expected=value, actual=current)
        return UpdateOutcome.FAILURE

    async def _save(self, page: Any) -> bool:
        # arm the navigation wait before clicking so a fast submit is not missed
        navigation = asyncio.ensure_future(wait_for_navigation(page, SAVE_NAVIGATION_TIMEOUT_MS))
        try:
            clicked = await self._click_save(page)
        except BaseException:
            navigation.cancel()
            raise
        if not clicked:
            navigation.cancel()
            return False

        done, _ = await asyncio.wait({navigation}, timeout=SAVE_NAVIGATION_GRACE_S)
        if not done:
            # saved in place, or a navigation that has not fired load yet
            navigation.cancel()
            await settle_load_state(page, "load", SAVE_NAVIGATION_TIMEOUT_MS)
        return True

    async def _click_save(self, page: Any) -> bool:
        button = await first_match(page, sel.SAVE_BUTTON)
        if button is None:
            for candidate in await page.query_selector_all(sel.SAVE_TEXT_CANDIDATES):
                text = (await candidate.inner_text()) or (await candidate.text_content()) or ""
                if sel.SAVE_TEXT in text.lower():
                    button = candidate
                    break

        if button is not None:
            await button.evaluate(sel.CLICK_JS)
            logger.info("save_clicked")
            return True

        if await page.evaluate(sel.SUBMIT_FORM_JS):
            logger.info("form_submitted_without_button")
            return True
        return False

    async def _read_weight(self, page: Any) -> Optional[float]:
        field = await first_match(page, sel.WEIGHT_INPUT_CHAIN)
        if field is None:
            return None
        raw = await field.input_value()
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None
