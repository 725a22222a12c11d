"""Shared configuration classes for quotesync.

This module defines the connection settings used by the remote client
and the defaults applied by the command-line collaborator.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BASE_URL = "https://jsonplaceholder.typicode.com"
DEFAULT_ENDPOINT = "/posts"
DEFAULT_FETCH_LIMIT = 5
DEFAULT_AUTO_SYNC_INTERVAL = 60.0  # seconds


@dataclass
class RemoteConfig:
    """Configuration for talking to the remote record collection.

    Attributes:
        base_url: Base URL of the remote source (e.g., "https://example.com").
        endpoint: Collection endpoint, fetched with GET and posted to.
        limit: Page size requested on every fetch.
        limit_param: Query parameter carrying the page size.
        user_id: userId sent with every created record.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    base_url: str = DEFAULT_BASE_URL
    endpoint: str = DEFAULT_ENDPOINT
    limit: int = DEFAULT_FETCH_LIMIT
    limit_param: str = "limit"
    user_id: int = 1
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize base URL and endpoint."""
        self.base_url = self.base_url.rstrip("/")
        if not self.endpoint.startswith("/"):
            self.endpoint = "/" + self.endpoint
        if self.limit < 1:
            raise ValueError(f"limit must be positive, got {self.limit}")

    @property
    def collection_url(self) -> str:
        """Full URL of the collection endpoint."""
        return f"{self.base_url}{self.endpoint}"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the remote uses HTTPS.
        """
        return self.base_url.startswith("https://")
