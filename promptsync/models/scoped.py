"""Declarations for artifacts that carry usage and rate limits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from promptsync.models.limits import ApiKeyLimits, WorkspaceLimits


@dataclass(frozen=True)
class DeclaredWorkspace:
    name: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    limits: WorkspaceLimits = field(default_factory=WorkspaceLimits)
    id: Optional[str] = None


@dataclass(frozen=True)
class DeclaredApiKey:
    """Desired state of an API key.

    ``key_type`` is ``organisation`` or ``workspace``; ``sub_type`` is
    ``service`` or ``user`` (the latter needs ``user_id``).
    """

    name: str
    key_type: str = "workspace"
    sub_type: str = "service"
    description: Optional[str] = None
    workspace_id: Optional[str] = None
    user_id: Optional[str] = None
    scopes: Optional[List[str]] = None
    metadata: Optional[Dict[str, str]] = None
    alert_emails: Optional[List[str]] = None
    expires_at: Optional[str] = None
    limits: ApiKeyLimits = field(default_factory=ApiKeyLimits)
    id: Optional[str] = None
