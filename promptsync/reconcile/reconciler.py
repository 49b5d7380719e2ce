"""Merge freshly fetched remote records into declared records.

Both functions are pure: they return a new record produced by a single
``model_copy`` so a caller either gets the whole verdict applied or nothing.
``version_description`` is never read from the remote record.
"""

from __future__ import annotations

from typing import Any, Dict

from promptsync.core.logging import get_logger
from promptsync.models.records import (
    DeclaredPartial,
    DeclaredPrompt,
    RemotePartial,
    RemotePrompt,
)
from promptsync.reconcile.versioning import VersionVerdict, classify

logger = get_logger(__name__)


def _metadata(remote: RemotePartial | RemotePrompt, declared: DeclaredPartial | DeclaredPrompt) -> Dict[str, Any]:
    """Remote-only fields that are refreshed on every cycle."""
    return {
        "id": remote.id or declared.id,
        "slug": remote.slug or declared.slug,
        "status": remote.status or declared.status,
        "created_at": remote.created_at or declared.created_at,
        "updated_at": remote.updated_at or declared.updated_at,
    }


def _versions(verdict: VersionVerdict, remote: RemotePartial | RemotePrompt, declared: DeclaredPartial | DeclaredPrompt) -> Dict[str, Any]:
    """Version fields to record.

    When remote wins its version replaces ours wholesale; on an unchanged
    cycle a malformed remote record must not erase the identity we hold.
    """
    seen = [n for n in (declared.latest_version, declared.version, remote.version) if n is not None]
    latest = max(seen) if seen else None
    if verdict.remote_wins:
        return {"version": remote.version, "version_id": remote.version_id, "latest_version": latest}
    return {
        "version": remote.version if remote.version is not None else declared.version,
        "version_id": remote.version_id or declared.version_id,
        "latest_version": latest,
    }


def _log_external_change(kind: str, verdict: VersionVerdict, declared: Any, remote: Any) -> None:
    if verdict is VersionVerdict.FIRST_POPULATION:
        logger.debug(f"Populating {kind} from remote", data={"slug": remote.slug})
        return
    logger.info(
        f"External change detected on {kind}; adopting remote content",
        data={
            "slug": remote.slug or declared.slug,
            "verdict": verdict.value,
            "local_version": declared.version,
            "remote_version": remote.version,
            "local_version_id": declared.version_id,
            "remote_version_id": remote.version_id,
        },
    )


def reconcile_partial(declared: DeclaredPartial, remote: RemotePartial) -> DeclaredPartial:
    """Reconcile a prompt partial.

    Returns:
        The declared record with remote metadata applied and, when someone
        else produced the current remote version, remote content adopted.
    """
    verdict = classify(declared.version, declared.version_id, remote.version, remote.version_id)

    update = _metadata(remote, declared)
    update.update(_versions(verdict, remote, declared))
    if verdict.remote_wins:
        _log_external_change("prompt partial", verdict, declared, remote)
        update["content"] = remote.content
        if remote.name is not None:
            update["name"] = remote.name
    # workspace_id is not returned by the API; it always stays as declared.

    return declared.model_copy(update=update)


def reconcile_prompt(declared: DeclaredPrompt, remote: RemotePrompt) -> DeclaredPrompt:
    """Reconcile a prompt.

    Same rules as :func:`reconcile_partial`; in addition model, virtual key
    and parameters are remote-authoritative on external change, and the
    collection is adopted only when the declaration does not name one.
    """
    verdict = classify(declared.version, declared.version_id, remote.version, remote.version_id)

    update = _metadata(remote, declared)
    update.update(_versions(verdict, remote, declared))
    update["version_status"] = remote.version_status or declared.version_status
    if not declared.collection_id and remote.collection_id:
        update["collection_id"] = remote.collection_id

    if verdict.remote_wins:
        _log_external_change("prompt", verdict, declared, remote)
        update["content"] = remote.content
        update["model"] = remote.model
        update["virtual_key"] = remote.virtual_key
        update["parameters"] = dict(remote.parameters) if remote.parameters is not None else {}
        if remote.name is not None:
            update["name"] = remote.name

    return declared.model_copy(update=update)
