from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
from playwright.async_api import Error as PlaywrightError

from . import site_selectors as sel
from .browser import first_match, goto, wait_for_navigation, wait_optional
from .config import Settings, get_settings
from .cookies import CookieStore
from .errors import MissingFieldError, PolarSyncError
from .utils import redact, timed

logger = structlog.get_logger()

LOGIN_PAGE_TIMEOUT_MS = 20_000
LOGIN_FORM_TIMEOUT_MS = 10_000
LOGIN_NAVIGATION_TIMEOUT_MS = 20_000


class SessionAuthenticator:
    """
    Logs in on auth.polar.com with the page the run already uses.

    authenticate() returns True once the credentials were typed and the login
    button was clicked. It does not look at where Polar sent us afterwards, the
    next update call is what proves the session works.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[CookieStore] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or CookieStore(self.settings.POLAR_COOKIES_FILE)

    async def authenticate(self, page: Any) -> bool:
        username = self.settings.POLAR_USERNAME
        password = self.settings.POLAR_PASSWORD
        if not username or not password:
            logger.error("credentials_missing", hint="set POLAR_USERNAME and POLAR_PASSWORD")
            return False

        with timed("authentication", user=redact(username)):
            try:
                await self._login(page, username, password)
            except (PolarSyncError, PlaywrightError) as e:
                logger.error("authentication_failed", error=str(e), error_type=type(e).__name__)
                return False

            cookies = await page.context.cookies()
            self.store.save(cookies)

        logger.info("authentication_submitted")
        return True

    async def _login(self, page: Any, username: str, password: str) -> None:
        await goto(page, self.settings.POLAR_AUTH_URL, LOGIN_PAGE_TIMEOUT_MS)

        # the form is rendered by script after networkidle
        await wait_optional(page, sel.LOGIN_FORM_READY, LOGIN_FORM_TIMEOUT_MS)

        email_field = await first_match(page, sel.LOGIN_EMAIL)
        if email_field is None:
            raise MissingFieldError("Could not find email/username input field")
        await email_field.fill(username)

        password_field = await first_match(page, sel.LOGIN_PASSWORD)
        if password_field is None:
            raise MissingFieldError("Could not find password input field")
        await password_field.fill(password)

        button = await first_match(page, sel.LOGIN_SUBMIT)
        if button is None:
            raise MissingFieldError("Could not find login button")

        navigated, _ = await asyncio.gather(
            wait_for_navigation(page, LOGIN_NAVIGATION_TIMEOUT_MS),
            button.click(),
        )
        if not navigated:
            logger.info("login_navigation_timeout", note="some logins finish without a full navigation")
