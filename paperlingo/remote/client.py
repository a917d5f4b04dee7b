"""
Remote store client for paperlingo.

HTTP wrapper around a keyed JSON store (Firebase Realtime Database REST
layout) partitioned by sync identity:

    GET    {base}/users/{identity}/{collection}.json        -> {id: record} | null
    PUT    {base}/users/{identity}/{collection}/{id}.json   -> upsert
    DELETE {base}/users/{identity}/{collection}/{id}.json   -> remove

Every operation is a no-op when the identity or base URL is absent, so the
rest of the application runs purely locally without special cases.

Hardening:
- Reads retry on server errors with exponential backoff
- Writes are never retried (activation-time reconciliation is the backstop)
- All transport failures surface as RemoteStoreError
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from paperlingo.config import get_settings
from paperlingo.remote.records import KINDS

DEFAULT_BACKOFF_FACTOR = 0.5
RETRY_STATUS_CODES = [500, 502, 503, 504]


class RemoteStoreError(RuntimeError):
    """Transport or protocol failure talking to the remote store."""


class RemoteStoreClient:
    """
    Best-effort per-record client for the remote store.

    Transport only: no merging, no caching.
    """

    def __init__(
        self,
        base_url: str | None = None,
        auth_token: str | None = None,
        timeout: int | None = None,
        retries: int | None = None,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Remote store URL (default from config)
            auth_token: Optional auth token (default from config)
            timeout: Request timeout in seconds
            retries: Retry attempts for reads
            backoff_factor: Exponential backoff factor between read retries
        """
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.remote_base_url).rstrip("/")
        self.auth_token = auth_token if auth_token is not None else settings.remote_auth_token
        self.timeout = timeout if timeout is not None else settings.remote_timeout

        self.session = requests.Session()
        retry_strategy = Retry(
            total=retries if retries is not None else settings.remote_fetch_retries,
            backoff_factor=backoff_factor,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.debug("Initialized remote store client: url={}, timeout={}s", self.base_url or "-", self.timeout)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    # ========================================
    # URL building
    # ========================================

    def _url(self, identity: str, kind: str, record_id: str | None = None) -> str:
        if kind not in KINDS:
            raise ValueError(f"Unknown record kind: {kind}")
        path = f"{self.base_url}/users/{quote(identity, safe='')}/{kind}"
        if record_id is not None:
            path += f"/{quote(record_id, safe='')}"
        return path + ".json"

    def _params(self) -> dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    def _active(self, identity: str | None) -> bool:
        return bool(identity) and self.enabled

    # ========================================
    # Core API Methods
    # ========================================

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.debug("Remote request: {} {}", method, url)
        try:
            response = self.session.request(
                method,
                url,
                params=self._params(),
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise RemoteStoreError(f"{method} {url} failed: {exc}") from exc
        return response

    def fetch_all(self, kind: str, identity: str | None) -> list[dict[str, Any]]:
        """
        Fetch every record of one kind for an identity.

        Args:
            kind: flashcards / decks / logs
            identity: Sync identity (None = no-op)

        Returns:
            List of raw records (empty when the collection does not exist)

        Raises:
            RemoteStoreError: On transport failure or a non-JSON body
        """
        if not self._active(identity):
            return []

        response = self._request("GET", self._url(identity, kind))
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteStoreError(f"Remote returned non-JSON for {kind}: {exc}") from exc

        if not data:
            return []
        if isinstance(data, dict):
            records = list(data.values())
        elif isinstance(data, list):
            # Sparse arrays come back as lists with nulls
            records = data
        else:
            raise RemoteStoreError(f"Unexpected payload for {kind}: {type(data).__name__}")

        records = [record for record in records if isinstance(record, dict)]
        logger.debug("Fetched {} {} for {}", len(records), kind, identity)
        return records

    def upsert(self, kind: str, identity: str | None, record: dict[str, Any]) -> None:
        """Overwrite-upsert one record keyed by its id."""
        if not self._active(identity):
            return
        self._request("PUT", self._url(identity, kind, str(record["id"])), json=record)

    def delete(self, kind: str, identity: str | None, record_id: str) -> None:
        """Remove one record."""
        if not self._active(identity):
            return
        self._request("DELETE", self._url(identity, kind, record_id))

    def close(self) -> None:
        self.session.close()
