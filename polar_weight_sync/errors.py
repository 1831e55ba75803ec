from __future__ import annotations


class PolarSyncError(Exception):
    """Base class for everything the sync engine raises on purpose."""


class TransientNetworkError(PolarSyncError):
    """Navigation or request failed or timed out; worth a fallback, not a crash."""


class AuthenticationRequired(PolarSyncError):
    """Polar redirected us to the login host."""


class StaleTokenError(PolarSyncError):
    """Direct form POST was rejected with 403, the CSRF token is no longer valid."""


class ElementNotFoundError(PolarSyncError):
    pass


class MissingFieldError(ElementNotFoundError):
    pass


class PersistenceError(PolarSyncError):
    pass
