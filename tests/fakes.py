"""In-memory stand-ins for the small part of the Playwright page API we use."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from polar_weight_sync import site_selectors as sel

FLOW_HOST = "flow.polar.com"
LOGIN_URL = "https://auth.polar.com/login"
SUBMIT_URL = "https://flow.polar.com/training/day/save"

FORM_CONTEXT = {"action": SUBMIT_URL, "csrfToken": "tok-1234567890", "userId": "42"}


class FakeElement:
    def __init__(self, value: str = "", text: str = "", on_click: Optional[Callable[[], None]] = None):
        self.value = value
        self.text = text
        self.on_click = on_click
        self.filled: List[str] = []
        self.clicks = 0

    async def fill(self, value: str) -> None:
        self.value = value
        self.filled.append(value)

    async def input_value(self) -> str:
        return self.value

    async def inner_text(self) -> str:
        return self.text

    async def text_content(self) -> str:
        return self.text

    async def click(self) -> None:
        self.clicks += 1
        if self.on_click:
            self.on_click()

    async def evaluate(self, expr: str, arg: Any = None) -> None:
        assert expr == sel.CLICK_JS
        await self.click()


class FakeResponse:
    def __init__(self, status: int, url: str = SUBMIT_URL):
        self.status = status
        self.url = url

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class FakeRequest:
    """page.request; answers with the scripted statuses (or raises scripted errors) in order."""

    def __init__(self, *responses: Any):
        self.responses = list(responses) or [200]
        self.calls: List[Dict[str, Any]] = []

    async def post(self, url: str, form: Optional[Dict[str, str]] = None, headers: Any = None, timeout: Any = None):
        self.calls.append({"url": url, "form": dict(form or {})})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, FakeResponse):
            return item
        return FakeResponse(item)


class FakeContext:
    def __init__(self, cookies: Optional[List[dict]] = None):
        self._cookies = cookies or [
            {"name": "SESSION", "value": "abc", "domain": ".polar.com", "path": "/", "expires": -1},
        ]

    async def cookies(self) -> List[dict]:
        return list(self._cookies)


class FakePage:
    """
    A page over a dict of selector -> FakeElement.

    Flow URLs bounce to the login page while ``logged_in`` is False. Clicking
    the login button (see ``login_page``) flips it.
    """

    def __init__(
        self,
        elements: Optional[Dict[str, FakeElement]] = None,
        *,
        form_context: Optional[dict] = None,
        logged_in: bool = True,
        request: Optional[FakeRequest] = None,
        candidates: Optional[List[FakeElement]] = None,
        can_submit_form: bool = False,
        navigation_timeout: bool = False,
        navigation_hangs: bool = False,
        network_busy: bool = False,
        goto_error: Optional[Exception] = None,
    ):
        self.elements = elements if elements is not None else {}
        self.form_context = form_context
        self.logged_in = logged_in
        self.request = request or FakeRequest(200)
        self.candidates = candidates or []
        self.can_submit_form = can_submit_form
        self.navigation_timeout = navigation_timeout
        self.navigation_hangs = navigation_hangs
        self.network_busy = network_busy
        self.goto_error = goto_error
        self.context = FakeContext()
        self.url = "about:blank"
        self.visited: List[str] = []
        self.form_submits = 0
        self.navigation_waits = 0
        self.load_state_waits: List[str] = []
        self.goto_wait_until: List[Optional[str]] = []

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[int] = None) -> None:
        self.visited.append(url)
        self.goto_wait_until.append(wait_until)
        if self.goto_error is not None:
            raise self.goto_error
        if FLOW_HOST in url and not self.logged_in:
            self.url = f"{LOGIN_URL}?redirect={url}"
        else:
            self.url = url

    async def wait_for_selector(self, selector: str, timeout: Optional[int] = None) -> Any:
        for part in selector.split(","):
            if part.strip() in self.elements:
                return self.elements[part.strip()]
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        return self.elements.get(selector)

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        assert selector == sel.SAVE_TEXT_CANDIDATES
        return list(self.candidates)

    async def evaluate(self, expr: str, arg: Any = None) -> Any:
        if expr == sel.FORM_CONTEXT_JS:
            return self.form_context
        if expr == sel.SUBMIT_FORM_JS:
            if self.can_submit_form:
                self.form_submits += 1
            return self.can_submit_form
        raise PlaywrightError(f"unexpected script: {expr[:40]}")

    async def wait_for_event(self, event: str, timeout: Optional[int] = None) -> None:
        self.navigation_waits += 1
        if self.navigation_timeout:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {event}")
        if self.navigation_hangs:
            # an in-place save: no load event before the waiter gives up
            await asyncio.sleep(3600)

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        self.load_state_waits.append(state)
        if state == "networkidle" and self.network_busy:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {state}")


def day_page(weight: str = "", **kwargs: Any) -> FakePage:
    """Logged-in day page with the daily form, weight input and save button."""
    weight_input = FakeElement(value=weight)
    elements = {
        sel.DAILY_FORM: FakeElement(),
        "#weight": weight_input,
        "#saveDailyDataBtn": FakeElement(text="Save"),
    }
    kwargs.setdefault("form_context", dict(FORM_CONTEXT))
    return FakePage(elements, **kwargs)


def login_page(**kwargs: Any) -> FakePage:
    """Starts logged out; the login button logs in and the day form is there afterwards."""
    page = day_page(logged_in=False, **kwargs)
    page.elements['input[name="email"]'] = FakeElement()
    page.elements['input[name="password"]'] = FakeElement()

    def _log_in() -> None:
        page.logged_in = True

    page.elements['button[type="submit"]'] = FakeElement(text="Login", on_click=_log_in)
    return page
