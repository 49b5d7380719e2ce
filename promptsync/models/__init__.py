"""Domain models: declared/remote records, limits and update intents."""

from promptsync.models.intent import UNKNOWN, IntentKind, UpdateIntent, is_unknown
from promptsync.models.limits import (
    ApiKeyLimits,
    ApiKeyRateLimit,
    ApiKeyUsageLimits,
    LimitSet,
    LimitShape,
    WorkspaceLimits,
    WorkspaceRateLimit,
    WorkspaceUsageLimit,
)
from promptsync.models.records import (
    DeclaredPartial,
    DeclaredPrompt,
    RemotePartial,
    RemotePrompt,
)
from promptsync.models.scoped import DeclaredApiKey, DeclaredWorkspace

__all__ = [
    "UNKNOWN",
    "IntentKind",
    "UpdateIntent",
    "is_unknown",
    "ApiKeyLimits",
    "ApiKeyRateLimit",
    "ApiKeyUsageLimits",
    "LimitSet",
    "LimitShape",
    "WorkspaceLimits",
    "WorkspaceRateLimit",
    "WorkspaceUsageLimit",
    "DeclaredPartial",
    "DeclaredPrompt",
    "RemotePartial",
    "RemotePrompt",
    "DeclaredApiKey",
    "DeclaredWorkspace",
]
