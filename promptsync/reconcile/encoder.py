"""Request payload builders.

Update payloads must keep three intents apart for every limit field:

* unresolved plan value -> key omitted, remote keeps what it has;
* removed by the operator -> explicit clear marker: ``[]`` for list-shaped
  fields, ``None`` for the object-shaped API key usage limits;
* concrete value -> fully serialized structure, entries in declared order.

Creation has no remote state to preserve, so there both "unresolved" and
"removed" mean "not populated".
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from promptsync.core.exceptions import InvalidDeclarationError
from promptsync.core.logging import get_logger
from promptsync.models.intent import UpdateIntent
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
from promptsync.models.records import DeclaredPartial, DeclaredPrompt
from promptsync.models.scoped import DeclaredApiKey, DeclaredWorkspace

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Limit entries
# ---------------------------------------------------------------------------

def _workspace_usage_entry(limit: WorkspaceUsageLimit) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "type": limit.type,
        "credit_limit": limit.credit_limit,
        "alert_threshold": limit.alert_threshold,
    }
    if limit.periodic_reset:
        entry["periodic_reset"] = limit.periodic_reset
    return entry


def _workspace_rate_entry(limit: WorkspaceRateLimit) -> Dict[str, Any]:
    return {"type": limit.type, "unit": limit.unit, "value": limit.value}


def _api_key_usage(limits: ApiKeyUsageLimits) -> Dict[str, Any]:
    # The API treats unset usage fields as absent, not null.
    return limits.model_dump(exclude_none=True)


def _api_key_rate_entry(limit: ApiKeyRateLimit) -> Dict[str, Any]:
    return {"type": limit.type, "unit": limit.unit, "value": limit.value}


def _serialize_list(entries: List[Any], to_entry: Callable[[Any], Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [to_entry(entry) for entry in entries]


# ---------------------------------------------------------------------------
# Limit sets
# ---------------------------------------------------------------------------

def _encode_workspace_update(limits: WorkspaceLimits) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    usage = UpdateIntent.from_declared(limits.usage_limits)
    if usage.is_assigned:
        usage = UpdateIntent.assigned(_serialize_list(usage.value, _workspace_usage_entry))
    usage.write(payload, "usage_limits", clear_marker=[])

    rate = UpdateIntent.from_declared(limits.rate_limits)
    if rate.is_assigned:
        rate = UpdateIntent.assigned(_serialize_list(rate.value, _workspace_rate_entry))
    rate.write(payload, "rate_limits", clear_marker=[])
    return payload


def _encode_api_key_update(limits: ApiKeyLimits) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    usage = UpdateIntent.from_declared(limits.usage_limits)
    if usage.is_assigned:
        usage = UpdateIntent.assigned(_api_key_usage(usage.value))
    usage.write(payload, "usage_limits", clear_marker=None)

    rate = UpdateIntent.from_declared(limits.rate_limits)
    if rate.is_assigned:
        rate = UpdateIntent.assigned(_serialize_list(rate.value, _api_key_rate_entry))
    rate.write(payload, "rate_limits", clear_marker=[])
    return payload


_UPDATE_ENCODERS: Dict[LimitShape, Callable[[Any], Dict[str, Any]]] = {
    LimitShape.WORKSPACE: _encode_workspace_update,
    LimitShape.API_KEY: _encode_api_key_update,
}


def encode_update_limits(limits: LimitSet) -> Dict[str, Any]:
    """Encode declared limits for a partial-update request.

    Args:
        limits: Workspace- or API-key-shaped declared limits.

    Returns:
        Payload fragment with ``usage_limits``/``rate_limits`` keys present
        only for fields the update should touch.
    """
    return _UPDATE_ENCODERS[limits.shape](limits)


def encode_create_limits(limits: LimitSet) -> Dict[str, Any]:
    """Encode declared limits for a creation request.

    Only concrete values are populated; unresolved and removed fields are
    both left out.
    """
    payload = encode_update_limits(limits)
    for key in ("usage_limits", "rate_limits"):
        if key in payload and not UpdateIntent.from_declared(getattr(limits, key)).is_assigned:
            del payload[key]
    return payload


# ---------------------------------------------------------------------------
# Prompt partials
# ---------------------------------------------------------------------------

def _require(value: Any, field: str, kind: str) -> Any:
    if value is None:
        raise InvalidDeclarationError(f"{kind} requires '{field}'", field=field)
    return value


def build_partial_create_payload(declared: DeclaredPartial) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": _require(declared.name, "name", "prompt partial"),
        "string": _require(declared.content, "content", "prompt partial"),
    }
    if declared.workspace_id:
        payload["workspace_id"] = declared.workspace_id
    if declared.version_description is not None:
        payload["version_description"] = declared.version_description
    return payload


def _warn_description_only(kind: str, slug: str | None) -> None:
    logger.warning(
        "Version description change ignored: descriptions only apply when a new version is created",
        data={"artifact": kind, "slug": slug},
    )


def build_partial_update_payload(prior: DeclaredPartial, new: DeclaredPartial) -> Dict[str, Any]:
    """Build the update body for a prompt partial.

    Only changed fields are sent. A content change creates a new version and
    carries the declared version description with it.
    """
    payload: Dict[str, Any] = {}
    content_changed = new.content != prior.content

    if new.name != prior.name:
        payload["name"] = new.name
    if content_changed:
        payload["string"] = new.content
        if new.version_description is not None:
            payload["version_description"] = new.version_description
    elif new.version_description != prior.version_description:
        _warn_description_only("prompt_partial", prior.slug)
    return payload


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def requires_new_version(prior: DeclaredPrompt, new: DeclaredPrompt) -> bool:
    """Whether the change between two prompt declarations creates a version."""
    return (
        new.content != prior.content
        or new.model != prior.model
        or new.effective_parameters != prior.effective_parameters
    )


def build_prompt_create_payload(declared: DeclaredPrompt) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": _require(declared.name, "name", "prompt"),
        "collection_id": _require(declared.collection_id, "collection_id", "prompt"),
        "string": _require(declared.content, "content", "prompt"),
        "parameters": declared.effective_parameters,
        "virtual_key": _require(declared.virtual_key, "virtual_key", "prompt"),
    }
    if declared.model:
        payload["model"] = declared.model
    if declared.version_description is not None:
        payload["version_description"] = declared.version_description
    return payload


def build_prompt_update_payload(prior: DeclaredPrompt, new: DeclaredPrompt) -> Dict[str, Any]:
    """Build the update body for a prompt.

    Template, model or parameter changes create a version, and the API then
    needs the full version body, virtual key included.
    """
    payload: Dict[str, Any] = {}
    new_version = requires_new_version(prior, new)

    if new.name != prior.name:
        payload["name"] = new.name
    if new.virtual_key != prior.virtual_key:
        payload["virtual_key"] = new.virtual_key

    if new_version:
        payload["string"] = new.content
        payload["model"] = new.model
        payload["parameters"] = new.effective_parameters
        payload["is_raw_template"] = 0
        payload["virtual_key"] = new.virtual_key
        if new.version_description is not None:
            payload["version_description"] = new.version_description
    elif new.version_description != prior.version_description:
        _warn_description_only("prompt", prior.slug)
    return payload


# ---------------------------------------------------------------------------
# Workspaces and API keys
# ---------------------------------------------------------------------------

def build_workspace_create_payload(declared: DeclaredWorkspace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": declared.name}
    if declared.description:
        payload["description"] = declared.description
    if declared.metadata:
        payload["defaults"] = {"metadata": dict(declared.metadata)}
    payload.update(encode_create_limits(declared.limits))
    return payload


def build_workspace_update_payload(declared: DeclaredWorkspace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": declared.name}
    if declared.description is not None:
        payload["description"] = declared.description
    if declared.metadata is not None:
        payload["defaults"] = {"metadata": dict(declared.metadata)}
    payload.update(encode_update_limits(declared.limits))
    return payload


def _api_key_common(declared: DeclaredApiKey) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": declared.name}
    if declared.description is not None:
        payload["description"] = declared.description
    if declared.scopes is not None:
        payload["scopes"] = list(declared.scopes)
    if declared.metadata is not None:
        payload["defaults"] = {"metadata": dict(declared.metadata)}
    if declared.alert_emails is not None:
        payload["alert_emails"] = list(declared.alert_emails)
    return payload


def build_api_key_create_payload(declared: DeclaredApiKey) -> Dict[str, Any]:
    if declared.sub_type == "user" and not declared.user_id:
        raise InvalidDeclarationError("user API keys require 'user_id'", field="user_id")
    if declared.key_type == "workspace" and not declared.workspace_id:
        raise InvalidDeclarationError("workspace API keys require 'workspace_id'", field="workspace_id")

    payload = _api_key_common(declared)
    if declared.workspace_id:
        payload["workspace_id"] = declared.workspace_id
    if declared.user_id:
        payload["user_id"] = declared.user_id
    if declared.expires_at:
        payload["expires_at"] = declared.expires_at
    payload.update(encode_create_limits(declared.limits))
    return payload


def build_api_key_update_payload(declared: DeclaredApiKey) -> Dict[str, Any]:
    payload = _api_key_common(declared)
    payload.update(encode_update_limits(declared.limits))
    return payload
