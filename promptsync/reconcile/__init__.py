"""Reconciliation engine: version comparison, state merge, payload encoding."""

from promptsync.reconcile.encoder import (
    build_api_key_create_payload,
    build_api_key_update_payload,
    build_partial_create_payload,
    build_partial_update_payload,
    build_prompt_create_payload,
    build_prompt_update_payload,
    build_workspace_create_payload,
    build_workspace_update_payload,
    encode_create_limits,
    encode_update_limits,
    requires_new_version,
)
from promptsync.reconcile.reconciler import reconcile_partial, reconcile_prompt
from promptsync.reconcile.versioning import VersionVerdict, classify

__all__ = [
    "build_api_key_create_payload",
    "build_api_key_update_payload",
    "build_partial_create_payload",
    "build_partial_update_payload",
    "build_prompt_create_payload",
    "build_prompt_update_payload",
    "build_workspace_create_payload",
    "build_workspace_update_payload",
    "encode_create_limits",
    "encode_update_limits",
    "requires_new_version",
    "reconcile_partial",
    "reconcile_prompt",
    "VersionVerdict",
    "classify",
]
