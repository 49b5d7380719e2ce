"""Deterministic in-memory admin API for tests and dry runs."""

from __future__ import annotations

import copy
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from promptsync.client.base import ArtifactKind
from promptsync.core.exceptions import NotFoundError, TransportError

# Fields that live on a version rather than on the artifact itself
_VERSION_FIELDS = {
    ArtifactKind.PROMPT_PARTIAL: ("string", "version_description"),
    ArtifactKind.PROMPT: ("string", "model", "parameters", "virtual_key", "is_raw_template", "version_description"),
}

_VERSION_ID_KEY = {
    ArtifactKind.PROMPT_PARTIAL: "prompt_partial_version_id",
    ArtifactKind.PROMPT: "prompt_version_id",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "artifact"


@dataclass
class _Artifact:
    kind: ArtifactKind
    fields: Dict[str, Any]
    versions: List[Dict[str, Any]] = field(default_factory=list)
    default_version: int = 0

    def version_record(self, number: int) -> Dict[str, Any]:
        for version in self.versions:
            if version["version"] == number:
                return version
        raise NotFoundError(f"version {number} not found")


class InMemoryArtifactClient:
    """In-process stand-in for the admin API.

    Content updates create a new version with a fresh identity token that
    only becomes current after ``make_default``, like the real API.
    ``edit_externally`` and ``rollback`` simulate console edits.
    """

    def __init__(self) -> None:
        self._store: Dict[Tuple[ArtifactKind, str], _Artifact] = {}
        self.requests: List[Tuple[str, ArtifactKind, Optional[str], Optional[Dict[str, Any]]]] = []
        self.fail_next: Optional[TransportError] = None

    # -- helpers -----------------------------------------------------------

    def _record(self, method: str, kind: ArtifactKind, identifier: Optional[str], payload: Optional[Dict[str, Any]]) -> None:
        self.requests.append((method, kind, identifier, copy.deepcopy(payload)))
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    def _get(self, kind: ArtifactKind, identifier: str) -> _Artifact:
        artifact = self._store.get((kind, identifier))
        if artifact is None:
            for candidate in self._store.values():
                if candidate.kind is kind and candidate.fields.get("id") == identifier:
                    return candidate
            raise NotFoundError(f"{kind.route}/{identifier} not found", path=f"{kind.route}/{identifier}")
        return artifact

    def _add_version(self, artifact: _Artifact, values: Dict[str, Any]) -> Dict[str, Any]:
        number = max((v["version"] for v in artifact.versions), default=0) + 1
        version = {
            "version": number,
            "version_id": str(uuid.uuid4()),
            "created_at": _now(),
        }
        previous = artifact.version_record(artifact.default_version) if artifact.default_version else {}
        for key in _VERSION_FIELDS[artifact.kind]:
            version[key] = copy.deepcopy(values[key]) if key in values else copy.deepcopy(previous.get(key))
        artifact.versions.append(version)
        return version

    def _resolve_version(self, artifact: _Artifact, version: Optional[str]) -> int:
        if version is None or version == "default":
            return artifact.default_version
        if version == "latest":
            return max(v["version"] for v in artifact.versions)
        try:
            return int(version)
        except (TypeError, ValueError):
            raise NotFoundError(f"version {version} not found") from None

    def _render(self, artifact: _Artifact, number: Optional[int] = None) -> Dict[str, Any]:
        record = copy.deepcopy(artifact.fields)
        if number is None:
            number = artifact.default_version
        if artifact.kind is ArtifactKind.PROMPT_PARTIAL:
            version = artifact.version_record(number)
            record.update(
                string=version["string"],
                version=version["version"],
                prompt_partial_version_id=version["version_id"],
                prompt_partial_version_status="active",
                version_description=version.get("version_description") or "",
            )
        elif artifact.kind is ArtifactKind.PROMPT:
            version = artifact.version_record(number)
            record.update(
                string=version["string"],
                model=version.get("model"),
                parameters=copy.deepcopy(version.get("parameters")),
                virtual_key=version.get("virtual_key"),
                is_raw_template=version.get("is_raw_template") or 0,
                prompt_version=version["version"],
                prompt_version_id=version["version_id"],
                prompt_version_status="active",
                prompt_version_description=version.get("version_description") or "",
            )
        return record

    # -- RemoteArtifactClient ---------------------------------------------

    def fetch(
        self,
        kind: ArtifactKind,
        identifier: str,
        version: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._record("GET", kind, identifier, {"version": version} if version is not None else None)
        artifact = self._get(kind, identifier)
        if not kind.versioned:
            return self._render(artifact)
        return self._render(artifact, self._resolve_version(artifact, version))

    def list_artifacts(
        self,
        kind: ArtifactKind,
        filters: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        self._record("GET", kind, None, filters)
        wanted = {k: v for k, v in (filters or {}).items() if v}
        return [
            self._render(artifact)
            for artifact in self._store.values()
            if artifact.kind is kind
            and all(artifact.fields.get(k) == v for k, v in wanted.items())
        ]

    def create(
        self,
        kind: ArtifactKind,
        payload: Dict[str, Any],
        subpath: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._record("POST", kind, subpath, payload)
        artifact_id = str(uuid.uuid4())
        slug = _slugify(payload.get("name", ""))
        while (kind, slug) in self._store:
            slug = f"{slug}-{artifact_id[:4]}"

        base = {k: copy.deepcopy(v) for k, v in payload.items() if k not in _VERSION_FIELDS.get(kind, ())}
        base.update(id=artifact_id, slug=slug, status="active", created_at=_now(), last_updated_at=_now())
        if kind is ArtifactKind.API_KEY and subpath:
            base["type"] = subpath.strip("/").replace("/", "-")
        artifact = _Artifact(kind=kind, fields=base)

        if kind.versioned:
            version = self._add_version(artifact, payload)
            artifact.default_version = version["version"]
            self._store[(kind, slug)] = artifact
            return {"id": artifact_id, "slug": slug, "version_id": version["version_id"]}

        self._store[(kind, artifact_id)] = artifact
        if kind is ArtifactKind.API_KEY:
            return {"id": artifact_id, "key": f"pk-{uuid.uuid4().hex}", "object": "api-key"}
        return self._render(artifact)

    def update(self, kind: ArtifactKind, identifier: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._record("PUT", kind, identifier, payload)
        artifact = self._get(kind, identifier)

        for key, value in payload.items():
            if key in _VERSION_FIELDS.get(kind, ()):
                continue
            if value is None:
                artifact.fields.pop(key, None)
            else:
                artifact.fields[key] = copy.deepcopy(value)
        artifact.fields["last_updated_at"] = _now()

        if kind.versioned and "string" in payload:
            version = self._add_version(artifact, payload)
            return {
                "id": artifact.fields["id"],
                "slug": artifact.fields["slug"],
                _VERSION_ID_KEY[kind]: version["version_id"],
            }
        if kind.versioned:
            return {}
        return self._render(artifact)

    def delete(
        self,
        kind: ArtifactKind,
        identifier: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._record("DELETE", kind, identifier, payload)
        artifact = self._get(kind, identifier)
        for key, candidate in list(self._store.items()):
            if candidate is artifact:
                del self._store[key]

    def make_default(self, kind: ArtifactKind, identifier: str, version: int) -> None:
        self._record("PUT", kind, f"{identifier}/makeDefault", {"version": version})
        artifact = self._get(kind, identifier)
        artifact.version_record(version)
        artifact.default_version = version

    # -- simulation ---------------------------------------------------------

    def edit_externally(self, kind: ArtifactKind, slug: str, **values: Any) -> Dict[str, Any]:
        """Create and publish a new version the way a console edit would."""
        artifact = self._get(kind, slug)
        if "content" in values:
            values["string"] = values.pop("content")
        version = self._add_version(artifact, values)
        artifact.default_version = version["version"]
        return self._render(artifact)

    def rollback(self, kind: ArtifactKind, slug: str, version: int) -> Dict[str, Any]:
        """Make an older version the default again."""
        artifact = self._get(kind, slug)
        artifact.version_record(version)
        artifact.default_version = version
        return self._render(artifact)
