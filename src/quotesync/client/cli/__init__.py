"""Command-line interface for QuoteSync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- add, edit, delete: Change quotes locally
- list: List quotes or open conflicts
- resolve: Override a flagged conflict
- sync: Synchronize with the remote (optionally in watch mode)
- status: Show local sync state
- export, import: Snapshot the local state
- config: Show or change settings
"""

from __future__ import annotations

import logging

import click

from quotesync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_state_db,
    load_config,
    save_config,
)
from quotesync.client.cli.records import add, delete, edit, list_records, resolve
from quotesync.client.cli.settings import config_cmd
from quotesync.client.cli.snapshot import export_cmd, import_cmd
from quotesync.client.cli.sync import status, sync

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def setup_logging(verbosity: int) -> None:
    """Route quotesync log records to stderr at the requested verbosity."""
    level = LOG_LEVELS[min(verbosity, len(LOG_LEVELS) - 1)]
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    quotesync_logger = logging.getLogger("quotesync")
    for existing in quotesync_logger.handlers[:]:
        quotesync_logger.removeHandler(existing)
    quotesync_logger.addHandler(handler)
    quotesync_logger.setLevel(level)
    quotesync_logger.propagate = False


@click.group()
@click.version_option(package_name="quotesync")
@click.option("--verbose", "-v", count=True, help="Increase log output (-v info, -vv debug).")
def cli(verbose: int) -> None:
    """QuoteSync - local-first quotes with server-wins sync."""
    setup_logging(verbose)


# Record commands
cli.add_command(add)
cli.add_command(edit)
cli.add_command(delete)
cli.add_command(list_records)
cli.add_command(resolve)

# Sync commands
cli.add_command(sync)
cli.add_command(status)

# Snapshot commands
cli.add_command(export_cmd)
cli.add_command(import_cmd)

# Settings
cli.add_command(config_cmd)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    "setup_logging",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_state_db",
    "load_config",
    "save_config",
]
