from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import structlog

from .errors import PersistenceError
from .models import Session

logger = structlog.get_logger()

# Keys Playwright's add_cookies accepts; anything else (size, session, priority, ...) is dropped
BROWSER_COOKIE_KEYS = ("name", "value", "url", "domain", "path", "expires", "httpOnly", "secure", "sameSite")


class CookieStore:
    """
    Session cookies on disk, as a plain JSON array.

    The file is advisory: Polar decides whether the session is still valid, so
    a missing or broken file only means "log in again".
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def _read(self) -> object:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"cannot read {self.path}: {e}") from e

    def load(self) -> Optional[Session]:
        if not self.path.exists():
            logger.info("cookies_not_found", path=str(self.path))
            return None
        try:
            data = self._read()
        except PersistenceError as e:
            logger.warning("cookies_load_failed", path=str(self.path), error=str(e))
            return None
        if not isinstance(data, list):
            logger.warning("cookies_load_failed", path=str(self.path), error="not a JSON array")
            return None
        logger.info("cookies_loaded", path=str(self.path), count=len(data))
        return data

    def save(self, cookies: Session) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(cookies, f, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            logger.error("cookies_save_failed", path=str(self.path), error=str(e))
            return False
        logger.info("cookies_saved", path=str(self.path), count=len(cookies))
        return True


def browser_cookies(cookies: Session) -> Session:
    """Reduce stored records to what the browser accepts, skipping unusable ones."""
    out: Session = []
    for c in cookies:
        if not isinstance(c, dict) or not c.get("name") or "value" not in c:
            continue
        if not c.get("domain") and not c.get("url"):
            continue
        cleaned = {k: c[k] for k in BROWSER_COOKIE_KEYS if k in c and c[k] is not None}
        # url and domain are mutually exclusive for add_cookies
        if "domain" in cleaned:
            cleaned.pop("url", None)
            cleaned.setdefault("path", "/")
        if "expires" in cleaned and not isinstance(cleaned["expires"], (int, float)):
            cleaned.pop("expires")
        if "sameSite" in cleaned and cleaned["sameSite"] not in ("Strict", "Lax", "None"):
            cleaned.pop("sameSite")
        out.append(cleaned)
    return out
