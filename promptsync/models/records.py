"""Declared and remote records for versioned prompt artifacts.

Declared records are what the operator wants (plus the computed fields this
tool last observed). Remote records are snapshots parsed from the admin API
using its own field names (``string``, ``prompt_version_id``, ...).
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class RemotePartial(BaseModel):
    """Prompt partial as returned by ``GET /prompts/partials/{slug}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    content: str = Field(default="", alias="string")
    status: Optional[str] = None
    version: Optional[int] = None
    version_id: Optional[str] = Field(default=None, alias="prompt_partial_version_id")
    version_status: Optional[str] = Field(default=None, alias="prompt_partial_version_status")
    version_description: Optional[str] = None
    collection_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = Field(default=None, alias="last_updated_at")

    @field_validator("version_id", "version_description", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class RemotePrompt(BaseModel):
    """Prompt as returned by ``GET /prompts/{slug}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    collection_id: Optional[str] = None
    content: str = Field(default="", alias="string")
    parameters: Optional[Dict[str, Any]] = None
    model: Optional[str] = None
    virtual_key: Optional[str] = None
    is_raw_template: int = 0
    status: Optional[str] = None
    version: Optional[int] = Field(default=None, alias="prompt_version")
    version_id: Optional[str] = Field(default=None, alias="prompt_version_id")
    version_status: Optional[str] = Field(default=None, alias="prompt_version_status")
    version_description: Optional[str] = Field(default=None, alias="prompt_version_description")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = Field(default=None, alias="last_updated_at")

    @field_validator("version_id", "version_description", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class DeclaredPartial(BaseModel):
    """Desired state of a prompt partial.

    ``version_description`` is the operator's annotation for the next version
    and is only ever set from the declaration.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    content: Optional[str] = None
    workspace_id: Optional[str] = None
    version_description: Optional[str] = None

    # Computed, filled in by reconciliation / apply
    id: Optional[str] = None
    slug: Optional[str] = None
    version: Optional[int] = None
    version_id: Optional[str] = None
    # Highest version number ever observed; adopting a rollback never lowers it
    latest_version: Optional[int] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_recorded_version(self) -> bool:
        return self.version is not None or self.version_id is not None

    @property
    def next_version(self) -> int:
        """Number the API will give the next version this tool creates."""
        return max(self.latest_version or 0, self.version or 0) + 1


class DeclaredPrompt(BaseModel):
    """Desired state of a prompt.

    ``parameters`` accepts a dict or a JSON object string.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    collection_id: Optional[str] = None
    content: Optional[str] = None
    model: Optional[str] = None
    virtual_key: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    version_description: Optional[str] = None

    id: Optional[str] = None
    slug: Optional[str] = None
    version: Optional[int] = None
    version_id: Optional[str] = None
    latest_version: Optional[int] = None
    version_status: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("parameters", mode="before")
    @classmethod
    def parse_parameters(cls, v: Any) -> Any:
        """Accept a JSON object string for parameters."""
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"parameters must be valid JSON: {e}") from e
            if not isinstance(parsed, dict):
                raise ValueError("parameters must be a JSON object")
            return parsed
        return v

    @property
    def has_recorded_version(self) -> bool:
        return self.version is not None or self.version_id is not None

    @property
    def next_version(self) -> int:
        """Number the API will give the next version this tool creates."""
        return max(self.latest_version or 0, self.version or 0) + 1

    @property
    def effective_parameters(self) -> Dict[str, Any]:
        """Parameters as sent to the API; unset means an empty object."""
        return dict(self.parameters or {})
