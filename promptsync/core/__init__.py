"""Core module with logging and exception types."""

from promptsync.core.exceptions import (
    ConfigurationError,
    InvalidDeclarationError,
    NotFoundError,
    PromptSyncError,
    TransportError,
)
from promptsync.core.logging import artifact_scope, get_logger, setup_logging

__all__ = [
    "artifact_scope",
    "get_logger",
    "setup_logging",
    "ConfigurationError",
    "InvalidDeclarationError",
    "NotFoundError",
    "PromptSyncError",
    "TransportError",
]
