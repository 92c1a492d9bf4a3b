# -*- coding: utf-8 -*-
import sys
from pathlib import Path

import click

from gtfs_loader.common.logging_config import setup_logging
from gtfs_loader.common.metrics import start_metrics_server
from gtfs_loader.processors.discovery import FeedSource
from gtfs_loader.processors.exceptions import GtfsLoaderError
from gtfs_loader.processors.feed_loader import plan_tables
from gtfs_loader.processors.main_pipeline import LoadSession
from gtfs_loader.setup.config_loader import load_loader_settings


@click.group()
def cli():
    """
    Bulk-load GTFS feed directories into a single relational database.
    """
    pass


@cli.command(name="load")
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path),
              help="YAML configuration file.")
@click.option("--feeds-root", type=click.Path(file_okay=False, path_type=Path),
              help="Directory with one sub-directory per feed.")
@click.option("--schema", "schema_path", type=click.Path(dir_okay=False, path_type=Path),
              help="SQL file with the schema DDL.")
@click.option("--database", "database_path", type=click.Path(dir_okay=False, path_type=Path),
              help="SQLite database file to write.")
@click.option("--backend", type=click.Choice(["sqlite", "postgres"]), help="Destination store.")
@click.option("--mode", "output_mode", type=click.Choice(["snapshot", "live"]),
              help="Write a fresh snapshot file at the end, or write to the store directly.")
@click.option("--transaction-scope", type=click.Choice(["feed", "session"]),
              help="One transaction per feed, or one for the whole run.")
@click.option("--on-feed-error", type=click.Choice(["abort", "continue"]),
              help="Stop at the first failing feed, or roll it back and continue.")
@click.option("--relax-durability/--no-relax-durability", default=None,
              help="Disable sync-to-disk for speed. Only for rebuildable databases.")
@click.option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...).")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Also write JSON log lines to this file.")
@click.option("--metrics-port", type=int, help="Serve Prometheus metrics on this port.")
def load_command(config_file, **options):
    """
    Load every feed under the feed root.

    Exits with status 1 and a single error message if the run fails.
    """
    settings = load_loader_settings(config_file, overrides=options)
    setup_logging(log_level=settings.log_level, log_file_path=settings.log_file)
    if settings.metrics_port:
        start_metrics_server(settings.metrics_port)

    try:
        report = LoadSession(settings).run()
    except GtfsLoaderError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for failure in report.failed:
        click.echo(f"Feed {failure.feed_name} not loaded: {failure.message}", err=True)
    click.echo(
        f"Loaded {len(report.loaded)} feed(s), {report.total_rows} rows"
        + (f" into {report.snapshot_path}" if report.snapshot_path else "")
    )
    if not report.succeeded:
        sys.exit(1)


@cli.command(name="tables")
@click.argument("feed_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path),
              help="YAML configuration file.")
def tables_command(feed_dir, config_file):
    """
    Show the order in which the tables of FEED_DIR would be loaded.
    """
    settings = load_loader_settings(config_file)
    feed = FeedSource(feed_dir)
    try:
        table_files = feed.table_files()
    except GtfsLoaderError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Feed {feed.name}:")
    for entry in plan_tables(table_files, settings):
        click.echo(f"  {entry.rank:>3}  {entry.table_file.file_name:<28} {entry.action.value}")


if __name__ == "__main__":
    cli()
