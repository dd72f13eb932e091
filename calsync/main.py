"""Command-line entry point: import CSV or Coda events into Google Calendar."""
from __future__ import annotations

import functools
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Sequence

import click
import yaml
from dotenv import load_dotenv

from calsync.coda_client import CodaClient
from calsync.config_manager import ConfigManager, resolve_config_path
from calsync.csv_source import read_events
from calsync.display import format_delete_preview, format_events, format_stats
from calsync.google_calendar import GoogleCalendarService
from calsync.importer import ImportRunner
from calsync.log import setup_logging
from calsync.models import AppConfig, CanonicalEvent, default_app_config


logger = logging.getLogger(__name__)


def _parse_cli_date(_ctx: click.Context, _param: click.Parameter, value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise click.BadParameter(f"Invalid date format '{value}'. Use YYYY-MM-DD") from exc


def _reporting_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except Exception as exc:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc

    return wrapper


def _import_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option(
            "-c",
            "--calendar-id",
            default=None,
            help="Google Calendar ID to add events to (defaults to the configured calendar, usually 'primary')",
        ),
        click.option("-n", "--dry-run", is_flag=True, help="Preview events without touching Google Calendar"),
        click.option("-s", "--stats", is_flag=True, help="Show totals by venue and organization"),
        click.option(
            "--start-date",
            callback=_parse_cli_date,
            help="Only include events on or after this date (YYYY-MM-DD)",
        ),
        click.option(
            "--end-date",
            callback=_parse_cli_date,
            help="Only include events on or before this date (YYYY-MM-DD)",
        ),
        click.option("-p", "--purchased", is_flag=True, help="Only include events where Purchased == Yes"),
        click.option("--delete", is_flag=True, help="Delete matching events instead of creating them"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_import(
    config: AppConfig,
    events: Sequence[CanonicalEvent],
    row_errors: Sequence[str],
    *,
    calendar_id: str | None,
    dry_run: bool,
    stats: bool,
    start_date: date | None,
    end_date: date | None,
    purchased: bool,
    delete: bool,
) -> None:
    runner = ImportRunner(config)
    outcome = runner.run(
        events,
        row_errors=row_errors,
        calendar_id=calendar_id,
        start_bound=start_date,
        end_bound=end_date,
        purchased_only=purchased,
        delete=delete,
        dry_run=dry_run,
    )
    if dry_run:
        if delete:
            click.echo(format_delete_preview(outcome.matches))
        else:
            click.echo(format_events(outcome.events))
    if stats:
        click.echo(format_stats(outcome.events))
    if dry_run or stats:
        click.echo()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (defaults to $CALSYNC_CONFIG or ./calsync.yaml)",
)
@click.option("--log-level", default=None, help="Log level (defaults to $CALSYNC_LOG_LEVEL or INFO)")
@click.option("--json-logs", is_flag=True, help="Emit log records as JSON lines")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None, json_logs: bool) -> None:
    """Sync calendar events from CSV files or Coda tables to Google Calendar."""
    load_dotenv()
    setup_logging(log_level, json_output=json_logs)
    ctx.obj = ConfigManager(resolve_config_path(str(config_path) if config_path else None))


@cli.command("import")
@click.option(
    "-f",
    "--file",
    "csv_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="CSV file containing events",
)
@_import_options
@click.pass_obj
@_reporting_errors
def import_csv(manager: ConfigManager, csv_file: Path, **options: Any) -> None:
    """Import events from a CSV file (use --dry-run to preview)."""
    logger.info("Importing events from: %s", csv_file)
    config = manager.load()
    events, row_errors = read_events(csv_file, config.sync.default_duration)
    _run_import(config, events, row_errors, **options)


@cli.command("coda-import")
@click.option("-d", "--doc-id", required=True, help="Coda document ID (from the doc URL)")
@click.option("-t", "--table-id", required=True, help="Coda table ID or name")
@_import_options
@click.pass_obj
@_reporting_errors
def coda_import(manager: ConfigManager, doc_id: str, table_id: str, **options: Any) -> None:
    """Import events from a Coda.io table (use --dry-run to preview)."""
    logger.info("Importing events from Coda doc: %s, table: %s", doc_id, table_id)
    config = manager.load()
    events, row_errors = CodaClient(config.coda).fetch_events(doc_id, table_id, config.sync.default_duration)
    _run_import(config, events, row_errors, **options)


@cli.command("list-coda-tables")
@click.option("-d", "--doc-id", required=True, help="Coda document ID (from the doc URL)")
@click.pass_obj
@_reporting_errors
def list_coda_tables(manager: ConfigManager, doc_id: str) -> None:
    """List tables in a Coda document (helps find table IDs)."""
    tables = CodaClient(manager.load().coda).list_tables(doc_id)
    click.echo("\nTables in Coda document:")
    click.echo("-" * 60)
    for table in tables:
        click.echo(f"  {table.name} ({table.table_type})")
        click.echo(f"    ID: {table.id}")
    click.echo()


@cli.command("list-calendars")
@click.pass_obj
@_reporting_errors
def list_calendars(manager: ConfigManager) -> None:
    """List available Google calendars."""
    calendars = GoogleCalendarService(manager.load().google).list_calendars()
    click.echo("\nAvailable Calendars:")
    click.echo("-" * 60)
    for calendar in calendars:
        marker = " [PRIMARY]" if calendar.primary else ""
        click.echo(f"  {calendar.name} {marker}")
        click.echo(f"    ID: {calendar.calendar_id}")


@cli.command("auth")
@click.pass_obj
@_reporting_errors
def auth(manager: ConfigManager) -> None:
    """Authenticate with Google Calendar and store the token for later runs."""
    logger.info("Authenticating with Google Calendar...")
    GoogleCalendarService(manager.load().google).authenticate()
    logger.info("Authentication successful!")


@cli.command("init-config")
@click.pass_obj
@_reporting_errors
def init_config(manager: ConfigManager) -> None:
    """Write a config file with default settings if none exists."""
    if manager.config_path.exists():
        click.echo(f"Config already exists: {manager.config_path}")
        return
    manager.save(default_app_config())
    click.echo(f"Wrote default config to {manager.config_path}")


@cli.command("show-config")
@click.pass_obj
@_reporting_errors
def show_config(manager: ConfigManager) -> None:
    """Print the effective configuration with secrets masked."""
    click.echo(yaml.safe_dump(manager.masked(), sort_keys=False, allow_unicode=True).rstrip())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
