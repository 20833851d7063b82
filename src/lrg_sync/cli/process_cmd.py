"""Process command: clean, import, link, annotate and verify LRG records.

Flow:
1. Load config (with --db override) and validate identifiers
2. Refuse disabled capabilities before touching the database
3. Resolve the records to process (input file, --lrg-id, or server listing)
4. Run the selected actions per record and print a per-record summary
5. Save a provenance sidecar for the batch
"""

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from lrg_sync.config.loader import load_config_with_overrides
from lrg_sync.errors import ConfigurationError, LRGSyncError
from lrg_sync.persistence import CoreStore, ProvenanceTracker
from lrg_sync.record.models import validate_lrg_id
from lrg_sync.remote import LRGRemoteClient
from lrg_sync.sync import BatchActions, RecordSource, run_batch
from lrg_sync.sync.xrefs import XrefLinker

logger = logging.getLogger(__name__)


def _select_ids(client: LRGRemoteClient) -> list[str]:
    """Ask which of the published records to process; blank selects all."""
    available = client.list_lrg_ids()
    if not available:
        raise ConfigurationError("The LRG server lists no records")
    click.echo(f"{len(available)} LRG records available on the server:")
    click.echo("  " + " ".join(available))
    answer = click.prompt(
        "Records to process (space or comma separated, blank for all)",
        default="",
        show_default=False,
    )
    chosen = [token for token in answer.replace(",", " ").split() if token]
    if not chosen:
        return available
    return [validate_lrg_id(lrg_id) for lrg_id in chosen]


@click.command('process')
@click.option(
    '--db',
    type=click.Path(path_type=Path),
    default=None,
    help='Core database DuckDB file (overrides database.path from config)'
)
@click.option(
    '--lrg-id', '--lrg_id', 'lrg_ids',
    multiple=True,
    help='LRG identifier to process (repeatable)'
)
@click.option(
    '--input-file', '--input_file', 'input_file',
    type=click.Path(path_type=Path),
    default=None,
    help='LRG XML file; its identifier overrides --lrg-id'
)
@click.option('--import', 'do_import', is_flag=True, help='Import mapping and annotation')
@click.option('--clean', is_flag=True, help='Remove everything previously written for the records')
@click.option('--overlap', is_flag=True, help='Flag genes overlapping the records')
@click.option('--verify', is_flag=True, help='Compare stored sequences with the records')
@click.option('--xrefs', is_flag=True, help='Add xrefs (superseded by the core xref pipeline)')
@click.pass_context
def process(ctx, db, lrg_ids, input_file, do_import, clean, overlap, verify, xrefs):
    """Run the selected actions for one or more LRG records.

    Actions run in the order clean, import, xrefs, overlap, verify for each
    record. A failure for one record is reported and the next record is
    processed.
    """
    config_path = ctx.obj['config_path']
    actions = BatchActions(
        clean=clean, import_=do_import, xrefs=xrefs, overlap=overlap, verify=verify
    )
    if not actions.selected():
        click.echo(click.style(
            "No action selected (use --import, --clean, --overlap, --verify or --xrefs)",
            fg='red'
        ), err=True)
        sys.exit(1)

    try:
        config = load_config_with_overrides(config_path, {'database.path': db})
    except (ValidationError, FileNotFoundError) as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        sys.exit(1)

    try:
        ids = [validate_lrg_id(lrg_id) for lrg_id in lrg_ids]
        if input_file is not None and not input_file.exists():
            raise ConfigurationError(f"Input file {input_file} does not exist")
        if actions.xrefs:
            XrefLinker(store=None, enabled=config.lrg.xrefs_enabled).ensure_enabled()

        client = LRGRemoteClient.from_config(config)
        source = RecordSource(input_file=input_file, client=client)
        if source.local_id is not None:
            ids = [source.local_id]
        elif not ids:
            ids = _select_ids(client)
    except LRGSyncError as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        sys.exit(1)

    click.echo(click.style("=== LRG Sync ===", bold=True))
    click.echo(f"Database: {config.database.path}")
    click.echo(f"Actions: {', '.join(actions.selected())}")
    click.echo(f"Records: {', '.join(ids)}")
    click.echo()

    provenance = ProvenanceTracker.from_config(config)
    store = CoreStore.from_config(config)
    try:
        report = run_batch(ids, actions, store, config, source=source, provenance=provenance)
    except LRGSyncError as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        sys.exit(1)
    finally:
        store.close()

    for outcome in report.outcomes:
        if outcome.error is not None:
            click.echo(click.style(f"{outcome.lrg_id}: FAILED - {outcome.error}", fg='red'))
            continue
        click.echo(click.style(f"{outcome.lrg_id}: {', '.join(outcome.completed)}", fg='green'))
        if outcome.imported is not None:
            click.echo(
                f"  Imported {len(outcome.imported.transcripts)} transcripts on "
                f"{outcome.imported.assembly} ({outcome.imported.gaps} gaps, "
                f"{outcome.imported.mismatches} mismatches)"
            )
        if outcome.overlaps is not None:
            partial = sum(1 for a in outcome.overlaps if a.is_partial)
            click.echo(
                f"  Overlapping genes: {len(outcome.overlaps)} ({partial} partial)"
            )
        if outcome.verification is not None:
            colour = 'green' if outcome.verification.passed else 'yellow'
            click.echo(click.style(f"  {outcome.verification.summary()}", fg=colour))
            for message in outcome.verification.messages:
                click.echo(f"    {message}")

    sidecar = provenance.save_sidecar(
        config.data_dir / f"batch_{provenance.created_at:%Y%m%dT%H%M%S}.json"
    )
    logger.info(f"Provenance written to {sidecar}")

    click.echo()
    if report.ok:
        click.echo(click.style("All records processed successfully", fg='green'))
        return

    click.echo(click.style(
        f"{len(report.failures)} failed, {len(report.inconsistent)} inconsistent",
        fg='red'
    ), err=True)
    sys.exit(1)
