"""Usage and rate limit declarations.

Two unrelated shapes exist: workspace-scoped limits and API-key limits.
They share nothing but the tri-state update discipline, so each gets its
own models and the declared pair is tagged with a ``LimitShape``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict

from promptsync.models.intent import UNKNOWN, _Unknown


class LimitShape(str, Enum):
    WORKSPACE = "workspace"
    API_KEY = "api_key"


class WorkspaceUsageLimit(BaseModel):
    """One workspace usage limit entry."""

    model_config = ConfigDict(extra="ignore")

    type: str  # "cost" or "tokens"
    credit_limit: Optional[int] = None
    alert_threshold: Optional[int] = None
    periodic_reset: Optional[str] = None  # "monthly" or "weekly"


class WorkspaceRateLimit(BaseModel):
    """One workspace rate limit entry."""

    model_config = ConfigDict(extra="ignore")

    type: str  # "requests" or "tokens"
    unit: str  # "rpm", "rph", "rpd"
    value: Optional[int] = None


class ApiKeyUsageLimits(BaseModel):
    """Usage limits of an API key (a single object, not a list)."""

    model_config = ConfigDict(extra="ignore")

    credit_limit: Optional[int] = None
    alert_threshold: Optional[int] = None
    periodic_reset: Optional[str] = None


class ApiKeyRateLimit(BaseModel):
    """One API key rate limit entry. ``value`` is always required here."""

    model_config = ConfigDict(extra="ignore")

    type: str
    unit: str
    value: int


@dataclass(frozen=True)
class WorkspaceLimits:
    """Declared limits for a workspace.

    Each field is ``UNKNOWN`` (unresolved), ``None`` (removed) or a list.
    """

    usage_limits: Union[List[WorkspaceUsageLimit], None, _Unknown] = UNKNOWN
    rate_limits: Union[List[WorkspaceRateLimit], None, _Unknown] = UNKNOWN

    shape = LimitShape.WORKSPACE


@dataclass(frozen=True)
class ApiKeyLimits:
    """Declared limits for an API key."""

    usage_limits: Union[ApiKeyUsageLimits, None, _Unknown] = UNKNOWN
    rate_limits: Union[List[ApiKeyRateLimit], None, _Unknown] = UNKNOWN

    shape = LimitShape.API_KEY


LimitSet = Union[WorkspaceLimits, ApiKeyLimits]
