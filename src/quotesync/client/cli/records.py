"""Record commands for the QuoteSync CLI.

Commands:
- add: Add a quote
- edit: Edit a quote
- delete: Delete a quote
- list: List quotes or open conflicts
- resolve: Override a flagged conflict
"""

from __future__ import annotations

import sys
from datetime import datetime

import click

from quotesync.client.cli.config import open_engine
from quotesync.core.errors import ValidationError
from quotesync.core.types import ConflictChoice


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.command()
@click.argument("text")
@click.option("--category", "-c", required=True, help="Quote category.")
@click.option("--author", "-a", default="", help="Quote author.")
def add(text: str, category: str, author: str) -> None:
    """Add a quote.

    The quote is stored locally and pushed on the next sync.
    """
    with open_engine() as engine:
        try:
            record = engine.upsert_local(text, category, author)
        except ValidationError as e:
            _fail(str(e))
    click.echo(f"Added {record.id}")


@click.command()
@click.argument("record_id")
@click.option("--text", "-t", default=None, help="New quote text.")
@click.option("--category", "-c", default=None, help="New category.")
@click.option("--author", "-a", default=None, help="New author.")
def edit(record_id: str, text: str | None, category: str | None, author: str | None) -> None:
    """Edit a quote.

    Options left out keep their current value.
    """
    with open_engine() as engine:
        current = engine.get_record(record_id)
        if current is None:
            _fail(f"No quote with id {record_id}")
        try:
            record = engine.upsert_local(
                text if text is not None else current.text,
                category if category is not None else current.category,
                author if author is not None else current.author,
                record_id=record_id,
            )
        except ValidationError as e:
            _fail(str(e))
    click.echo(f"Updated {record.id} (version {record.version})")


@click.command()
@click.argument("record_id")
def delete(record_id: str) -> None:
    """Delete a quote."""
    with open_engine() as engine:
        try:
            engine.delete_local(record_id)
        except KeyError:
            _fail(f"No quote with id {record_id}")
    click.echo(f"Deleted {record_id}")


@click.command("list")
@click.option("--conflicts", is_flag=True, help="Show open conflicts instead.")
def list_records(conflicts: bool) -> None:
    """List quotes.

    Conflicted quotes are marked with '!'.
    """
    with open_engine() as engine:
        if conflicts:
            open_conflicts = engine.list_conflicts()
            if not open_conflicts:
                click.echo("No conflicts.")
                return
            for conflict in open_conflicts:
                detected = datetime.fromtimestamp(conflict.detected_at)
                click.echo(f"{conflict.id} (detected {detected:%Y-%m-%d %H:%M})")
                click.echo(f"  local:  \"{conflict.local.text}\" [{conflict.local.category}]")
                click.echo(f"  remote: \"{conflict.remote.text}\" [{conflict.remote.category}]")
            return

        records = engine.list_records()
        if not records:
            click.echo("No quotes.")
            return
        for record in records:
            marker = "!" if record.conflicted else " "
            author = f" - {record.author}" if record.author else ""
            click.echo(f"{marker} {record.id:<18} [{record.category}] \"{record.text}\"{author}")


@click.command()
@click.argument("record_id")
@click.option(
    "--keep",
    type=click.Choice([c.value for c in ConflictChoice]),
    required=True,
    help="Which side of the conflict to keep.",
)
def resolve(record_id: str, keep: str) -> None:
    """Resolve a conflict by keeping the local or remote version."""
    choice = ConflictChoice(keep)
    with open_engine() as engine:
        try:
            engine.resolve_conflict(record_id, choice)
        except KeyError:
            _fail(f"No open conflict for {record_id}")
    click.echo(f"Resolved {record_id}: kept {choice.value} version")
