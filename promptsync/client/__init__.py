"""Admin API clients."""

from promptsync.client.base import ArtifactKind, RemoteArtifactClient
from promptsync.client.http import API_KEY_HEADER, AdminAPIClient
from promptsync.client.memory import InMemoryArtifactClient

__all__ = [
    "ArtifactKind",
    "RemoteArtifactClient",
    "API_KEY_HEADER",
    "AdminAPIClient",
    "InMemoryArtifactClient",
]
