"""Exception types for promptsync."""

from typing import Any, Dict, Optional


class PromptSyncError(Exception):
    """Base exception for promptsync."""

    def __init__(
        self,
        message: str,
        code: str = "E5000",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(PromptSyncError):
    """Client or settings are not usable."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message, code="E1000")


class NotFoundError(PromptSyncError):
    """Remote artifact does not exist (any more)."""

    def __init__(self, message: str = "Resource not found", path: str = None):
        super().__init__(
            message,
            code="E4040",
            details={"path": path} if path else {},
        )
        self.path = path


class TransportError(PromptSyncError):
    """Network, auth or server failure talking to the admin API.

    Never retried here; callers decide what to do with it.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        path: str = None,
    ):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if path:
            details["path"] = path
        super().__init__(message, code="E3000", details=details)
        self.status_code = status_code
        self.body = body
        self.path = path


class InvalidDeclarationError(PromptSyncError):
    """A declaration cannot be turned into a request."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message,
            code="E4220",
            details={"field": field} if field else {},
        )
        self.field = field
