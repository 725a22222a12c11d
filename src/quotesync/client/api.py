"""HTTP client for the remote record collection.

This module provides:
- RemoteClient: fetch/create operations against the remote collection
- map_remote_item: translation of remote-native items to Records

The remote source carries no native timestamp. Fetched records get the
time of fetch as updated_at, so their freshness is approximate; the sync
engine compares content, never timestamps.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from quotesync.core.config import RemoteConfig
from quotesync.core.errors import ParseError, TransportError
from quotesync.core.schemas import Record
from quotesync.core.types import REMOTE_CATEGORY, REMOTE_ID_PREFIX, Origin

logger = logging.getLogger(__name__)


def remote_id(native_id: Any) -> str:
    """Build a record id from a remote-native id."""
    return f"{REMOTE_ID_PREFIX}{native_id}"


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def map_remote_item(item: Any, fetched_at: float) -> Record:
    """Map a remote-native item to a Record.

    Args:
        item: Decoded JSON object with at least id, title and userId.
        fetched_at: Timestamp to use as updated_at.

    Returns:
        Record with a remote-prefixed id and the fixed remote category.

    Raises:
        ParseError: If the item is not an object or lacks required fields.
    """
    if not isinstance(item, dict):
        raise ParseError(f"Expected an object, got {type(item).__name__}")
    try:
        native_id = item["id"]
        title = item["title"]
        user_id = item["userId"]
    except KeyError as e:
        raise ParseError(f"Remote item is missing field {e}") from e
    if not isinstance(title, str) or not title.strip():
        raise ParseError(f"Remote item {native_id!r} has an empty title")

    return Record(
        id=remote_id(native_id),
        text=_capitalize(title.strip()),
        author=f"User {user_id}",
        category=REMOTE_CATEGORY,
        updated_at=fetched_at,
        version=1,
        origin=Origin.REMOTE,
    )


class RemoteClient:
    """HTTP client for the remote record collection."""

    def __init__(
        self,
        config: RemoteConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the remote client.

        Args:
            config: Remote connection configuration.
            transport: Optional httpx transport (tests).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def config(self) -> RemoteConfig:
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RemoteClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and turn transport failures into TransportError."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {url} timed out") from e
        except httpx.RequestError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(
                f"{method} {url} returned {response.status_code}",
                response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Remote returned invalid JSON: {e}") from e

    def health_check(self) -> bool:
        """Check if the remote collection answers.

        Returns:
            True if a minimal fetch succeeds.
        """
        try:
            response = self._client.get(
                self._config.endpoint,
                params={self._config.limit_param: "1"},
            )
            return response.status_code == 200
        except httpx.RequestError:
            return False

    def fetch_remote(self) -> list[Record]:
        """Fetch a bounded page of remote items as Records.

        Returns:
            Records in remote order.

        Raises:
            TransportError: On network failure or non-success status.
            ParseError: If the payload is not a list of valid items.
        """
        response = self._request(
            "GET",
            self._config.endpoint,
            params={self._config.limit_param: str(self._config.limit)},
        )
        payload = self._json(response)
        if not isinstance(payload, list):
            raise ParseError(
                f"Expected a JSON array from {self._config.endpoint}, "
                f"got {type(payload).__name__}"
            )

        fetched_at = time.time()
        records = [map_remote_item(item, fetched_at) for item in payload]
        logger.debug("Fetched %d remote records", len(records))
        return records

    def create_remote(self, record: Record) -> str:
        """Submit a record to the remote collection.

        The remote is not required to persist the content; only the
        returned identifier is trusted.

        Args:
            record: Record whose content is pushed.

        Returns:
            Remote-prefixed id assigned by the remote.

        Raises:
            TransportError: On network failure or non-success status.
            ParseError: If the response carries no id.
        """
        response = self._request(
            "POST",
            self._config.endpoint,
            json={
                "title": record.text,
                "body": record.category,
                "userId": self._config.user_id,
            },
        )
        payload = self._json(response)
        if not isinstance(payload, dict) or payload.get("id") is None:
            raise ParseError("Create response carries no id")

        new_id = remote_id(payload["id"])
        logger.debug("Remote accepted %s as %s", record.id, new_id)
        return new_id
