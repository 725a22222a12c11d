"""Configuration command for the QuoteSync CLI.

Commands:
- config: Show or change settings
"""

from __future__ import annotations

import click

from quotesync.client.cli.config import (
    get_auto_sync_interval,
    get_config_file,
    get_remote_config,
    load_config,
    save_config,
)


@click.command("config")
@click.option("--base-url", default=None, help="Base URL of the remote collection.")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Quotes fetched per sync.")
@click.option(
    "--interval",
    type=click.FloatRange(min=1.0),
    default=None,
    help="Seconds between background syncs.",
)
def config_cmd(base_url: str | None, limit: int | None, interval: float | None) -> None:
    """Show or change settings.

    Without options, prints the current settings.
    """
    config = load_config()
    changed = False
    if base_url is not None:
        config["base_url"] = base_url.rstrip("/")
        changed = True
    if limit is not None:
        config["limit"] = limit
        changed = True
    if interval is not None:
        config["auto_sync_interval"] = interval
        changed = True

    if changed:
        save_config(config)
        click.echo(f"Saved {get_config_file()}")

    remote = get_remote_config(config)
    click.echo(f"Remote:        {remote.collection_url}")
    click.echo(f"Fetch limit:   {remote.limit}")
    click.echo(f"Sync interval: {get_auto_sync_interval(config):.0f}s")
