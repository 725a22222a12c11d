"""Sync commands for the QuoteSync CLI.

Commands:
- sync: Synchronize quotes with the remote
- status: Show local sync state
"""

from __future__ import annotations

import sys
import time
from datetime import datetime

import click

from quotesync.client.cli.config import get_auto_sync_interval, open_engine
from quotesync.client.notifications import Notification, NotificationType
from quotesync.core.types import SyncMode


def echo_notification(notification: Notification) -> None:
    """Print an engine notification."""
    if notification.type == NotificationType.ERROR:
        click.echo(click.style(f"✗ {notification}", fg="red"), err=True)
    elif notification.type == NotificationType.CONFLICT:
        click.echo(click.style(f"! {notification}", fg="yellow"))
    else:
        click.echo(f"  {notification}")


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep syncing in the background until Ctrl+C.")
@click.option(
    "--interval",
    "-i",
    type=click.FloatRange(min=1.0),
    default=None,
    help="Seconds between background syncs (default from config).",
)
def sync(watch: bool, interval: float | None) -> None:
    """Synchronize quotes with the remote.

    Pulls remote quotes, merges them (server wins, conflicts are flagged),
    then pushes local changes. Use --watch to keep syncing periodically.
    """
    if interval is None:
        interval = get_auto_sync_interval()

    with open_engine(on_notify=echo_notification, auto_sync_interval=interval) as engine:
        report = engine.trigger_sync(SyncMode.VERBOSE)
        failed = report is not None and report.error is not None

        if report is not None and report.conflicts:
            click.echo(click.style("\nConflicts:", fg="yellow"))
            for conflict in report.conflicts:
                click.echo(f"  ! {conflict.id}")
            click.echo("Run 'quotesync list --conflicts' to review them.")

        if not watch:
            if failed:
                sys.exit(1)
            return

        engine.set_auto_sync(True)
        click.echo(f"\nSyncing every {interval:.0f}s... (Ctrl+C to stop)\n")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.echo("\nStopping...")
        finally:
            engine.set_auto_sync(False)


@click.command()
def status() -> None:
    """Show local sync state."""
    with open_engine() as engine:
        records = engine.list_records()
        last_sync = engine.last_sync_at()
        click.echo(f"Quotes:          {len(records)}")
        click.echo(f"Pending changes: {engine.pending_count()}")
        click.echo(f"Open conflicts:  {len(engine.list_conflicts())}")
        if last_sync is None:
            click.echo("Last sync:       never")
        else:
            click.echo(f"Last sync:       {datetime.fromtimestamp(last_sync):%Y-%m-%d %H:%M:%S}")
