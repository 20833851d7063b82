"""Watermark commands: print current table maxima and revert to them."""

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from lrg_sync.config.loader import load_config_with_overrides
from lrg_sync.errors import LRGSyncError
from lrg_sync.persistence import CoreStore
from lrg_sync.persistence.watermark import (
    REVERT_WARNING,
    read_watermarks,
    revert,
    snapshot,
    write_watermarks,
)

logger = logging.getLogger(__name__)


def _open_store(config_path: Path, db: Path | None) -> CoreStore:
    try:
        config = load_config_with_overrides(config_path, {'database.path': db})
    except (ValidationError, FileNotFoundError) as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        sys.exit(1)
    return CoreStore.from_config(config)


@click.command('max')
@click.option(
    '--db',
    type=click.Path(path_type=Path),
    default=None,
    help='Core database DuckDB file (overrides database.path from config)'
)
@click.option(
    '--output',
    type=click.Path(path_type=Path),
    default=None,
    help='Write watermarks to this file instead of stdout'
)
@click.pass_context
def max_cmd(ctx, db, output):
    """Print the current maximum key of every tracked table.

    Output lines are tab-separated 'table field max_value' and can be fed
    back to 'revert' to undo everything written afterwards.
    """
    store = _open_store(ctx.obj['config_path'], db)
    try:
        records = snapshot(store)
    finally:
        store.close()

    if output is None:
        write_watermarks(records, sys.stdout)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w') as f:
        write_watermarks(records, f)
    click.echo(click.style(f"Watermarks for {len(records)} tables written to {output}", fg='green'), err=True)


@click.command('revert')
@click.option(
    '--db',
    type=click.Path(path_type=Path),
    default=None,
    help='Core database DuckDB file (overrides database.path from config)'
)
@click.option(
    '--input-file', '--input_file', 'input_file',
    type=click.Path(path_type=Path),
    required=True,
    help="File of 'table field max_value' lines, as written by 'max'"
)
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def revert_cmd(ctx, db, input_file, yes):
    """Delete every row whose key is above the stored maxima."""
    try:
        records = read_watermarks(input_file)
    except LRGSyncError as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        sys.exit(1)

    click.echo(click.style(f"WARNING: {REVERT_WARNING}", fg='yellow'), err=True)
    if not yes:
        click.confirm("Revert the database to these watermarks?", abort=True)

    store = _open_store(ctx.obj['config_path'], db)
    try:
        deleted = revert(store, records)
    except LRGSyncError as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        sys.exit(1)
    finally:
        store.close()

    for table, count in deleted.items():
        click.echo(f"{table}\t{count}")
    click.echo(click.style(f"Deleted {sum(deleted.values())} rows", fg='green'))
