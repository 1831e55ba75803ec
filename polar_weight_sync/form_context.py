from __future__ import annotations

import datetime as dt
from typing import Any, Optional

import structlog

from . import site_selectors as sel
from .browser import goto, on_auth_domain
from .errors import AuthenticationRequired
from .models import FormContext
from .utils import format_flow_date, redact

logger = structlog.get_logger()

FORM_PAGE_TIMEOUT_MS = 15_000


def day_url(flow_url: str, day: str | dt.date) -> str:
    return f"{flow_url.rstrip('/')}/training/day/{format_flow_date(day)}"


class FormContextCache:
    """
    Submit URL, CSRF token and user id of the day form, read once per run.

    The three fields do not depend on the day, so whichever date is asked for
    first fills the cache and every later date reuses it. A 403 on submit means
    the token went stale; the updater calls invalidate() and the next ensure()
    reads the form again.
    """

    def __init__(self, flow_url: str, auth_url: str):
        self.flow_url = flow_url
        self.auth_url = auth_url
        self.context: Optional[FormContext] = None
        # set when the day page has no form at all; direct submits stop for the run
        self.unavailable = False
        self.loads = 0

    async def ensure(self, page: Any, day: str | dt.date) -> Optional[FormContext]:
        """
        Cached context, or a freshly read one.

        Raises AuthenticationRequired when the day page redirects to login and
        TransientNetworkError when it does not load. Returns None when there is
        nothing usable to submit with.
        """
        if self.context is not None:
            return self.context
        if self.unavailable:
            return None

        url = day_url(self.flow_url, day)
        self.loads += 1
        logger.info("form_context_fetch", url=url, load=self.loads)
        await goto(page, url, FORM_PAGE_TIMEOUT_MS)

        if on_auth_domain(page, self.auth_url):
            raise AuthenticationRequired(f"redirected to {page.url}")

        raw = await page.evaluate(sel.FORM_CONTEXT_JS)
        if not raw:
            logger.warning("form_context_missing", url=url)
            self.unavailable = True
            return None

        action, token, user_id = raw.get("action"), raw.get("csrfToken"), raw.get("userId")
        if not action or not token or not user_id:
            logger.warning("form_context_incomplete", has_action=bool(action), has_token=bool(token), has_user=bool(user_id))
            return None

        self.context = FormContext(submit_url=action, csrf_token=token, user_id=user_id)
        logger.info("form_context_cached", action=action, token=redact(token))
        return self.context

    def invalidate(self) -> None:
        if self.context is not None:
            logger.info("form_context_invalidated")
        self.context = None
