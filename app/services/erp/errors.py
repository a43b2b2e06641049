"""Exception taxonomy for the ERP integration.

Only ``ConfigurationError`` crosses the ``ResilientClient`` boundary as an
exception. Everything else is folded into a ``CallResult`` by the client, or
handled inside the reconciler.
"""

from __future__ import annotations


class ERPError(Exception):
    """Base exception for ERP integration errors."""

    def __init__(self, message: str, status_code: int | None = None, response: object | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class ConfigurationError(ERPError):
    """Credentials or base URL missing; the integration is unusable."""

    pass


class AuthenticationError(ERPError):
    """Credential exchange failed or the token was rejected."""

    pass


class NotFoundError(ERPError):
    """Target entity absent from the ERP."""

    pass


class ValidationError(ERPError):
    """The ERP rejected the outbound payload."""

    pass


class TransientNetworkError(ERPError):
    """Timeout, connection reset or upstream 5xx."""

    pass


class PersistenceConflictError(ERPError):
    """Local database constraint violation while reconciling a sync outcome."""

    def __init__(self, message: str, kind: str = "other"):
        super().__init__(message)
        self.kind = kind
