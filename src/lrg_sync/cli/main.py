"""Main CLI entry point for lrg-sync.

Provides command group with global options and subcommands for importing,
cleaning, annotating and verifying LRG records in a core database.
"""

import logging
from pathlib import Path

import click
import structlog

from lrg_sync import __version__
from lrg_sync.config.loader import load_config
from lrg_sync.cli.process_cmd import process
from lrg_sync.cli.watermark_cmd import max_cmd, revert_cmd


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to lrg-sync configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """lrg-sync: Synchronize Locus Reference Genomic records with a core database.

    Imports LRG mappings and annotation, removes them again, flags
    overlapping genes and checks stored sequences against the records.
    """
    # Set up context
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    # Library events go through stdlib logging; stdout carries command output only
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    # Set logging level
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display lrg-sync information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"lrg-sync v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        # Display config hash
        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Core Database:", bold=True))
        click.echo(f"  DuckDB Path: {config.database.path}")
        click.echo(f"  Transactional Imports: {config.database.transactional}")
        click.echo()

        click.echo(click.style("LRG Settings:", bold=True))
        click.echo(f"  Coordinate System: {config.lrg.coord_system_name}")
        click.echo(f"  Biotype: {config.lrg.biotype}")
        click.echo(f"  Analysis: {config.lrg.analysis_logic_name}")
        click.echo(f"  Xrefs Enabled: {config.lrg.xrefs_enabled}")
        click.echo()

        # Display paths
        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  Cache Directory: {config.cache_dir}")
        click.echo()

        click.echo(click.style("LRG Server:", bold=True))
        click.echo(f"  Listing: {config.remote.listing_url}")
        for url in config.remote.base_urls:
            click.echo(f"  Source: {url}")
        click.echo(f"  Rate Limit: {config.api.rate_limit_per_second} req/s")
        click.echo(f"  Max Retries: {config.api.max_retries}")
        click.echo(f"  Cache TTL: {config.api.cache_ttl_seconds}s")
        click.echo(f"  Timeout: {config.api.timeout_seconds}s")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


# Register commands
cli.add_command(process)
cli.add_command(max_cmd)
cli.add_command(revert_cmd)


if __name__ == '__main__':
    cli()
