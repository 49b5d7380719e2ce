"""Sync cycles for prompts, partials, workspaces and API keys.

A cycle is one fetch and one reconciliation (refresh), or one write followed
by whatever read-back the API needs (create/apply). The service holds no
state of its own: the prior record is always passed in and a new record is
returned, so a cycle that raises leaves the caller's record untouched.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from promptsync.client.base import ArtifactKind, RemoteArtifactClient
from promptsync.core.exceptions import InvalidDeclarationError, NotFoundError
from promptsync.core.logging import artifact_scope, get_logger
from promptsync.models.records import (
    DeclaredPartial,
    DeclaredPrompt,
    RemotePartial,
    RemotePrompt,
)
from promptsync.models.scoped import DeclaredApiKey, DeclaredWorkspace
from promptsync.reconcile.encoder import (
    build_api_key_create_payload,
    build_api_key_update_payload,
    build_partial_create_payload,
    build_partial_update_payload,
    build_prompt_create_payload,
    build_prompt_update_payload,
    build_workspace_create_payload,
    build_workspace_update_payload,
    requires_new_version,
)
from promptsync.reconcile.reconciler import reconcile_partial, reconcile_prompt

logger = get_logger(__name__)


def parse_import_id(import_id: str) -> Tuple[Optional[str], str]:
    """Split an import ID into ``(workspace_id, slug)``.

    Accepts ``slug`` or ``workspace_id/slug``; slugs never contain ``/``.
    """
    parts = import_id.strip().split("/", 1)
    if len(parts) == 2:
        workspace_id, slug = parts
        if not workspace_id or not slug or "/" in slug:
            raise InvalidDeclarationError(f"invalid import ID '{import_id}'", field="slug")
        return workspace_id, slug
    if not parts[0]:
        raise InvalidDeclarationError("import ID cannot be empty", field="slug")
    return None, parts[0]


def _identifier(declared: Any) -> str:
    identifier = declared.slug or declared.id
    if not identifier:
        raise InvalidDeclarationError("artifact has no slug or id recorded yet", field="slug")
    return identifier


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactSyncService:
    """Runs sync cycles against a ``RemoteArtifactClient``."""

    def __init__(self, client: RemoteArtifactClient):
        self.client = client

    # ------------------------------------------------------------------
    # Prompt partials
    # ------------------------------------------------------------------

    def refresh_partial(self, declared: DeclaredPartial) -> Optional[DeclaredPartial]:
        """Fetch the partial and reconcile it into ``declared``.

        Returns:
            The reconciled record, or ``None`` if the partial no longer
            exists remotely.
        """
        identifier = _identifier(declared)
        with artifact_scope(ArtifactKind.PROMPT_PARTIAL.value, identifier):
            try:
                data = self.client.fetch(ArtifactKind.PROMPT_PARTIAL, identifier)
            except NotFoundError:
                logger.info("Prompt partial not found remotely; it will be recreated")
                return None
            return reconcile_partial(declared, RemotePartial.model_validate(data))

    def import_partial(self, import_id: str) -> Optional[DeclaredPartial]:
        """Adopt an existing partial by ``slug`` or ``workspace_id/slug``."""
        workspace_id, slug = parse_import_id(import_id)
        return self.refresh_partial(DeclaredPartial(slug=slug, workspace_id=workspace_id))

    def get_partial(self, slug: str, version: Optional[str] = None) -> RemotePartial:
        """Read-only lookup of a partial.

        Args:
            slug: Slug or ID.
            version: ``"default"``, ``"latest"`` or a version number.
        """
        data = self.client.fetch(ArtifactKind.PROMPT_PARTIAL, slug, version=version)
        return RemotePartial.model_validate(data)

    def list_partials(self, workspace_id: Optional[str] = None) -> List[RemotePartial]:
        filters = {"workspace_id": workspace_id} if workspace_id else None
        return [
            RemotePartial.model_validate(item)
            for item in self.client.list_artifacts(ArtifactKind.PROMPT_PARTIAL, filters)
        ]

    def create_partial(self, declared: DeclaredPartial) -> DeclaredPartial:
        payload = build_partial_create_payload(declared)
        with artifact_scope(ArtifactKind.PROMPT_PARTIAL.value, declared.name):
            ack = self.client.create(ArtifactKind.PROMPT_PARTIAL, payload)
            slug = ack.get("slug") or ack.get("id")
            logger.info("Created prompt partial", data={"id": ack.get("id"), "slug": slug})
            data = self.client.fetch(ArtifactKind.PROMPT_PARTIAL, slug)
            return reconcile_partial(declared, RemotePartial.model_validate(data))

    def apply_partial(self, prior: DeclaredPartial, new: DeclaredPartial) -> DeclaredPartial:
        """Push the difference between ``prior`` and ``new``.

        A content change creates a version, which is then made the default.
        The returned record is built from the declaration and the API's
        acknowledgement rather than a read-back, since reads may lag writes.
        """
        identifier = _identifier(prior)
        payload = build_partial_update_payload(prior, new)
        carried = {
            "id": prior.id,
            "slug": prior.slug,
            "created_at": prior.created_at,
            "version": prior.version,
            "version_id": prior.version_id,
            "latest_version": prior.latest_version,
            "status": prior.status,
            "updated_at": prior.updated_at,
        }
        if not payload:
            return new.model_copy(update=carried)

        with artifact_scope(ArtifactKind.PROMPT_PARTIAL.value, identifier):
            ack = self.client.update(ArtifactKind.PROMPT_PARTIAL, identifier, payload)
            version_id = ack.get("prompt_partial_version_id")
            if "string" in payload and version_id:
                version = self._created_version(ArtifactKind.PROMPT_PARTIAL, identifier, prior, version_id)
                self.client.make_default(ArtifactKind.PROMPT_PARTIAL, identifier, version)
                logger.info(
                    "Published new prompt partial version",
                    data={"version": version, "version_id": version_id},
                )
                carried.update(version=version, version_id=version_id, latest_version=version)

        carried.update(status="active", updated_at=_utcnow())
        return new.model_copy(update=carried)

    def delete_partial(self, declared: DeclaredPartial) -> bool:
        """Delete the partial. Returns ``False`` if it was already gone."""
        return self._delete(ArtifactKind.PROMPT_PARTIAL, _identifier(declared))

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def refresh_prompt(self, declared: DeclaredPrompt) -> Optional[DeclaredPrompt]:
        identifier = _identifier(declared)
        with artifact_scope(ArtifactKind.PROMPT.value, identifier):
            try:
                data = self.client.fetch(ArtifactKind.PROMPT, identifier)
            except NotFoundError:
                logger.info("Prompt not found remotely; it will be recreated")
                return None
            return reconcile_prompt(declared, RemotePrompt.model_validate(data))

    def import_prompt(self, slug: str) -> Optional[DeclaredPrompt]:
        return self.refresh_prompt(DeclaredPrompt(slug=slug))

    def get_prompt(self, slug: str, version: Optional[str] = None) -> RemotePrompt:
        data = self.client.fetch(ArtifactKind.PROMPT, slug, version=version)
        return RemotePrompt.model_validate(data)

    def list_prompts(
        self,
        workspace_id: Optional[str] = None,
        collection_id: Optional[str] = None,
    ) -> List[RemotePrompt]:
        filters = {"workspace_id": workspace_id, "collection_id": collection_id}
        return [
            RemotePrompt.model_validate(item)
            for item in self.client.list_artifacts(ArtifactKind.PROMPT, filters)
        ]

    def create_prompt(self, declared: DeclaredPrompt) -> DeclaredPrompt:
        payload = build_prompt_create_payload(declared)
        with artifact_scope(ArtifactKind.PROMPT.value, declared.name):
            ack = self.client.create(ArtifactKind.PROMPT, payload)
            slug = ack.get("slug") or ack.get("id")
            logger.info("Created prompt", data={"id": ack.get("id"), "slug": slug})
            data = self.client.fetch(ArtifactKind.PROMPT, slug)
            return reconcile_prompt(declared, RemotePrompt.model_validate(data))

    def apply_prompt(self, prior: DeclaredPrompt, new: DeclaredPrompt) -> DeclaredPrompt:
        """Push the difference between two prompt declarations.

        Template, model or parameter changes create a version which is then
        made the default; name and virtual key changes alone do not.
        """
        identifier = _identifier(prior)
        payload = build_prompt_update_payload(prior, new)
        carried = {
            "id": prior.id,
            "slug": prior.slug,
            "created_at": prior.created_at,
            "version": prior.version,
            "version_id": prior.version_id,
            "latest_version": prior.latest_version,
            "version_status": prior.version_status,
            "status": prior.status,
            "updated_at": prior.updated_at,
            "collection_id": new.collection_id or prior.collection_id,
        }
        if not payload:
            return new.model_copy(update=carried)

        with artifact_scope(ArtifactKind.PROMPT.value, identifier):
            ack = self.client.update(ArtifactKind.PROMPT, identifier, payload)
            version_id = ack.get("prompt_version_id")
            if requires_new_version(prior, new) and version_id:
                version = self._created_version(ArtifactKind.PROMPT, identifier, prior, version_id)
                self.client.make_default(ArtifactKind.PROMPT, identifier, version)
                logger.info(
                    "Published new prompt version",
                    data={"version": version, "version_id": version_id},
                )
                carried.update(
                    version=version,
                    version_id=version_id,
                    latest_version=version,
                    version_status="active",
                )

        carried.update(status="active", updated_at=_utcnow())
        return new.model_copy(update=carried)

    def delete_prompt(self, declared: DeclaredPrompt) -> bool:
        return self._delete(ArtifactKind.PROMPT, _identifier(declared))

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------

    def create_workspace(self, declared: DeclaredWorkspace) -> DeclaredWorkspace:
        payload = build_workspace_create_payload(declared)
        with artifact_scope(ArtifactKind.WORKSPACE.value, declared.name):
            ack = self.client.create(ArtifactKind.WORKSPACE, payload)
            logger.info("Created workspace", data={"id": ack.get("id")})
        return replace(declared, id=ack.get("id"))

    def update_workspace(self, declared: DeclaredWorkspace) -> DeclaredWorkspace:
        if not declared.id:
            raise InvalidDeclarationError("workspace has no id recorded yet", field="id")
        payload = build_workspace_update_payload(declared)
        with artifact_scope(ArtifactKind.WORKSPACE.value, declared.id):
            self.client.update(ArtifactKind.WORKSPACE, declared.id, payload)
        return declared

    def delete_workspace(self, declared: DeclaredWorkspace) -> bool:
        if not declared.id:
            raise InvalidDeclarationError("workspace has no id recorded yet", field="id")
        # The API refuses workspace deletion without the name in the body
        return self._delete(ArtifactKind.WORKSPACE, declared.id, {"name": declared.name})

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def create_api_key(self, declared: DeclaredApiKey) -> Tuple[DeclaredApiKey, Optional[str]]:
        """Create an API key.

        Returns:
            The declaration with its new ID, and the secret key, which the
            API only reveals on creation.
        """
        payload = build_api_key_create_payload(declared)
        with artifact_scope(ArtifactKind.API_KEY.value, declared.name):
            ack = self.client.create(
                ArtifactKind.API_KEY,
                payload,
                subpath=f"{declared.key_type}/{declared.sub_type}",
            )
            logger.info("Created API key", data={"id": ack.get("id")})
        return replace(declared, id=ack.get("id")), ack.get("key")

    def update_api_key(self, declared: DeclaredApiKey) -> DeclaredApiKey:
        if not declared.id:
            raise InvalidDeclarationError("API key has no id recorded yet", field="id")
        payload = build_api_key_update_payload(declared)
        with artifact_scope(ArtifactKind.API_KEY.value, declared.id):
            self.client.update(ArtifactKind.API_KEY, declared.id, payload)
        return declared

    def delete_api_key(self, declared: DeclaredApiKey) -> bool:
        if not declared.id:
            raise InvalidDeclarationError("API key has no id recorded yet", field="id")
        return self._delete(ArtifactKind.API_KEY, declared.id)

    # ------------------------------------------------------------------

    def _created_version(
        self,
        kind: ArtifactKind,
        identifier: str,
        prior: Union[DeclaredPartial, DeclaredPrompt],
        version_id: str,
    ) -> int:
        """Number of the version an update just created.

        The update acknowledgement only carries the new version ID, so the
        number is read from the latest version. If that read does not show
        the new version yet, fall back to one past the highest number seen,
        which stays correct after a rollback was adopted.
        """
        remote_cls: Type[Union[RemotePartial, RemotePrompt]] = (
            RemotePrompt if kind is ArtifactKind.PROMPT else RemotePartial
        )
        try:
            latest = remote_cls.model_validate(self.client.fetch(kind, identifier, version="latest"))
        except NotFoundError:
            latest = None
        if latest is not None and latest.version_id == version_id and latest.version is not None:
            return latest.version
        logger.debug(
            "Latest version does not show the update yet; using highest seen version + 1",
            data={"version_id": version_id, "next_version": prior.next_version},
        )
        return prior.next_version

    def _delete(
        self,
        kind: ArtifactKind,
        identifier: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        with artifact_scope(kind.value, identifier):
            try:
                self.client.delete(kind, identifier, payload)
            except NotFoundError:
                logger.info(f"{kind.value} already deleted")
                return False
            logger.info(f"Deleted {kind.value}")
        return True
