"""Export/import commands for the QuoteSync CLI.

Commands:
- export: Write the local state as JSON
- import: Load a JSON snapshot or quotes file
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from quotesync.client.cli.config import open_engine
from quotesync.core.errors import ParseError


@click.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), required=False)
def export_cmd(output: Path | None) -> None:
    """Export the local state as JSON.

    Writes to OUTPUT, or to standard output when omitted.
    """
    with open_engine() as engine:
        data = json.dumps(engine.export_state(), indent=2)

    if output is None:
        click.echo(data)
        return
    output.write_text(data + "\n")
    click.echo(f"Exported to {output}", err=True)


@click.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_cmd(source: Path) -> None:
    """Import a JSON snapshot or quotes file.

    A snapshot from 'quotesync export' replaces the local state. A JSON
    array of {"text", "category", "author"} objects adds new quotes.
    """
    try:
        data = json.loads(source.read_text())
    except json.JSONDecodeError as e:
        click.echo(f"Error: {source} is not valid JSON: {e}", err=True)
        sys.exit(1)

    with open_engine() as engine:
        try:
            count = engine.import_state(data)
        except ParseError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    click.echo(f"Imported {count} quotes from {source}")
