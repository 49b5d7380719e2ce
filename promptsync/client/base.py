"""Remote artifact client abstraction.

The reconciliation engine never talks HTTP itself; sync cycles go through a
``RemoteArtifactClient``. ``AdminAPIClient`` is the real implementation and
``InMemoryArtifactClient`` a deterministic double for tests.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


class ArtifactKind(str, Enum):
    PROMPT = "prompt"
    PROMPT_PARTIAL = "prompt_partial"
    WORKSPACE = "workspace"
    API_KEY = "api_key"

    @property
    def route(self) -> str:
        """Collection path of this kind on the admin API."""
        return _ROUTES[self]

    @property
    def versioned(self) -> bool:
        return self in (ArtifactKind.PROMPT, ArtifactKind.PROMPT_PARTIAL)


_ROUTES = {
    ArtifactKind.PROMPT: "/prompts",
    ArtifactKind.PROMPT_PARTIAL: "/prompts/partials",
    ArtifactKind.WORKSPACE: "/admin/workspaces",
    ArtifactKind.API_KEY: "/api-keys",
}


class RemoteArtifactClient(Protocol):
    """Protocol for admin API backends.

    Every call is a single blocking request. Implementations raise
    ``NotFoundError`` for missing artifacts and ``TransportError`` for any
    other failure; they never retry.
    """

    def fetch(
        self,
        kind: ArtifactKind,
        identifier: str,
        version: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch a record.

        Args:
            kind: Artifact kind.
            identifier: Slug or ID.
            version: For prompts and partials, ``"default"`` (the same as
                ``None``), ``"latest"`` or a version number.

        Returns:
            The decoded JSON record.
        """
        ...

    def list_artifacts(
        self,
        kind: ArtifactKind,
        filters: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """List records of a kind, optionally filtered (``workspace_id``,
        ``collection_id``)."""
        ...

    def create(
        self,
        kind: ArtifactKind,
        payload: Dict[str, Any],
        subpath: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an artifact.

        Args:
            kind: Artifact kind.
            payload: Request body.
            subpath: Extra path below the collection route (API keys are
                created under ``/{type}/{sub_type}``).

        Returns:
            The decoded response, at least ``id`` and usually ``slug``.
        """
        ...

    def update(self, kind: ArtifactKind, identifier: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a partial update. Returns the decoded response, ``{}`` if empty."""
        ...

    def delete(
        self,
        kind: ArtifactKind,
        identifier: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Delete an artifact."""
        ...

    def make_default(self, kind: ArtifactKind, identifier: str, version: int) -> None:
        """Make ``version`` the default version of a prompt or partial."""
        ...
