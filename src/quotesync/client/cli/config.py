"""Configuration utilities for the QuoteSync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from quotesync.core.config import (
    DEFAULT_AUTO_SYNC_INTERVAL,
    DEFAULT_BASE_URL,
    DEFAULT_FETCH_LIMIT,
    RemoteConfig,
)


def get_config_dir() -> Path:
    """Get the configuration directory for QuoteSync.

    Returns:
        Path to ~/.quotesync or equivalent.
    """
    return Path.home() / ".quotesync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db() -> Path:
    """Get the path to the local state database."""
    return get_config_dir() / "state.db"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_remote_config(config: dict[str, Any] | None = None) -> RemoteConfig:
    """Build the remote configuration from the config file values."""
    if config is None:
        config = load_config()
    return RemoteConfig(
        base_url=config.get("base_url", DEFAULT_BASE_URL),
        limit=int(config.get("limit", DEFAULT_FETCH_LIMIT)),
    )


def get_auto_sync_interval(config: dict[str, Any] | None = None) -> float:
    """Seconds between auto-sync cycles in watch mode."""
    if config is None:
        config = load_config()
    return float(config.get("auto_sync_interval", DEFAULT_AUTO_SYNC_INTERVAL))


@contextmanager
def open_engine(**engine_kwargs: Any) -> Iterator[Any]:
    """Open local state and the remote client, and yield a SyncEngine.

    Both are closed when the block exits.
    """
    from quotesync.client.api import RemoteClient
    from quotesync.client.state import LocalSyncState
    from quotesync.client.sync import SyncEngine

    config = load_config()
    engine_kwargs.setdefault("auto_sync_interval", get_auto_sync_interval(config))

    state = LocalSyncState.open(get_state_db())
    remote = RemoteClient(get_remote_config(config))
    engine = SyncEngine(state, remote, **engine_kwargs)
    try:
        yield engine
    finally:
        engine.shutdown()
        remote.close()
        state.close()
