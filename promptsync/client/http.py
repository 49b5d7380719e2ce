"""Admin API client built on httpx."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx

from promptsync.client.base import ArtifactKind
from promptsync.config import Settings
from promptsync.core.exceptions import ConfigurationError, NotFoundError, TransportError
from promptsync.core.logging import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "x-portkey-api-key"


class AdminAPIClient:
    """Synchronous client for the prompt admin API.

    One request per call, no retries. The request deadline is the client
    timeout; a timed-out call raises ``TransportError``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``https://api.portkey.ai/v1``.
            api_key: Admin API key.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use ``MockTransport``).
        """
        if not base_url:
            raise ConfigurationError("base URL cannot be empty")
        if not api_key:
            raise ConfigurationError("API key cannot be empty")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "AdminAPIClient":
        return cls(
            base_url=settings.portkey_base_url,
            api_key=settings.portkey_api_key,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={
                    "Content-Type": "application/json",
                    API_KEY_HEADER: self.api_key,
                },
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> "AdminAPIClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Perform one request and decode the JSON response.

        Returns:
            Decoded JSON, or ``None`` for an empty body.
        """
        logger.debug(f"{method} {path}", data={"body": body} if body is not None else None)
        try:
            response = self.client.request(
                method,
                path,
                content=json.dumps(body) if body is not None else None,
                params=params,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out: {method} {path}", path=path) from e
        except httpx.HTTPError as e:
            raise TransportError(f"error making request: {e}", path=path) from e

        if response.status_code == 404:
            raise NotFoundError(f"{path} not found", path=path)
        if response.status_code < 200 or response.status_code >= 300:
            raise TransportError(
                f"API request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
                path=path,
            )

        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _decode_record(self, data: Any, path: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise TransportError(f"unexpected response body for {path}", path=path)
        return data

    def fetch(
        self,
        kind: ArtifactKind,
        identifier: str,
        version: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch the default record of an artifact, or a given version."""
        path = f"{kind.route}/{identifier}"
        params = {"version": str(version)} if version is not None else None
        return self._decode_record(self._request("GET", path, params=params), path)

    def list_artifacts(
        self,
        kind: ArtifactKind,
        filters: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """List records. The API wraps them in a ``data`` array."""
        params = {k: v for k, v in (filters or {}).items() if v} or None
        data = self._request("GET", kind.route, params=params)
        if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
            raise TransportError(f"unexpected response body for {kind.route}", path=kind.route)
        return [item for item in data.get("data", []) if isinstance(item, dict)]

    def create(
        self,
        kind: ArtifactKind,
        payload: Dict[str, Any],
        subpath: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an artifact and return the API's acknowledgement."""
        path = kind.route if not subpath else f"{kind.route}/{subpath.strip('/')}"
        return self._decode_record(self._request("POST", path, payload), path)

    def update(self, kind: ArtifactKind, identifier: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a partial update.

        Name-only updates answer with an empty body, so anything that is not
        a JSON object comes back as ``{}``.
        """
        data = self._request("PUT", f"{kind.route}/{identifier}", payload)
        return data if isinstance(data, dict) else {}

    def delete(
        self,
        kind: ArtifactKind,
        identifier: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Delete an artifact. Workspaces need their name in the body."""
        self._request("DELETE", f"{kind.route}/{identifier}", payload)

    def make_default(self, kind: ArtifactKind, identifier: str, version: int) -> None:
        """Make a version the default one."""
        if not kind.versioned:
            raise ConfigurationError(f"{kind.value} has no versions")
        self._request("PUT", f"{kind.route}/{identifier}/makeDefault", {"version": version})
