"""Command line interface: ``contentstack-migrate export|import``.

Exit codes:
    0: every entity was applied or skipped
    1: the run completed but at least one entity failed
    2: the run failed (configuration, dependency cycle, snapshot I/O,
       deadline, or a failed read)
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from .client import ContentstackClient
from .config_factory import ConfigFactory
from .exceptions import ContentstackError
from .export import ContentstackExporter, ContentstackImporter
from .log import configure_logging
from .models import (
    EntityKind,
    ExportOptions,
    ImportOptions,
    OutcomeStatus,
    StackConfig,
    SyncReport,
)
from .operations.filters import parse_timestamp

console = Console()

EXIT_OK = 0
EXIT_ENTITY_FAILURES = 1
EXIT_RUN_FAILED = 2


def _parse_date(ctx: click.Context, param: click.Parameter, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 date: {value}") from None


def _stack_options(func: Any) -> Any:
    """Connection and logging options shared by both commands."""
    options = [
        click.option("--key", "-k", envvar="CONTENTSTACK_API_KEY", help="Stack API key"),
        click.option(
            "--token", "-t", envvar="CONTENTSTACK_MANAGEMENT_TOKEN", help="Management token"
        ),
        click.option("--branch", "-b", envvar="CONTENTSTACK_BRANCH", help="Branch (default: main)"),
        click.option("--host", envvar="CONTENTSTACK_HOST", help="API host"),
        click.option(
            "--logLevel",
            "-l",
            "log_level",
            type=click.IntRange(0, 5),
            default=3,
            show_default=True,
            help="0 silly, 1 trace, 2 debug, 3 info, 4 warn, 5 error",
        ),
        click.option(
            "--deadline", type=click.FloatRange(min=0, min_open=True), help="Run deadline (s)"
        ),
        click.option("--contentTypes", "-c", "content_types", is_flag=True),
        click.option("--globalFields", "-g", "global_fields", is_flag=True),
        click.option("--entries", "-e", is_flag=True),
        click.option("--assets", "-a", is_flag=True),
        click.option("--taxonomies", is_flag=True),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _selected_kinds(
    content_types: bool, global_fields: bool, entries: bool, assets: bool, taxonomies: bool
) -> set[EntityKind]:
    """Kinds named by flags; none means all."""
    flags = {
        EntityKind.CONTENT_TYPE: content_types,
        EntityKind.GLOBAL_FIELD: global_fields,
        EntityKind.ENTRY: entries,
        EntityKind.ASSET: assets,
        EntityKind.TAXONOMY: taxonomies,
    }
    return {kind for kind, selected in flags.items() if selected}


def _build_config(
    key: str | None, token: str | None, branch: str | None, host: str | None
) -> StackConfig:
    values = {"api_key": key, "management_token": token, "branch": branch, "host": host}
    return ConfigFactory.create(**{k: v for k, v in values.items() if v is not None})


def _print_report(
    title: str, report: SyncReport, counts: dict[EntityKind, int] | None = None
) -> None:
    table = Table(title=title)
    table.add_column("Kind", style="cyan")
    if counts is not None:
        table.add_column("Exported", justify="right")
    for status in OutcomeStatus:
        if counts is None or status is OutcomeStatus.FAILED:
            table.add_column(status.value.capitalize(), justify="right")

    kinds = [k for k in EntityKind if (counts and k in counts) or report.for_kind(k)]
    for kind in kinds:
        row = [kind.collection_key]
        if counts is not None:
            row.append(str(counts.get(kind, 0)))
        for status in OutcomeStatus:
            if counts is None or status is OutcomeStatus.FAILED:
                row.append(str(report.count(kind, status)))
        table.add_row(*row)

    console.print(table)
    for failure in report.failures:
        console.print(f"[red]✗[/red] {failure.kind.value} {failure.uid}: {failure.reason}")


def _exit_code(report: SyncReport) -> int:
    return EXIT_OK if report.success else EXIT_ENTITY_FAILURES


@click.group()
@click.version_option(package_name="contentstack-migration")
def cli() -> None:
    """Export and import Contentstack content."""


@cli.command("export")
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@_stack_options
@click.option("--startDate", "start_date", required=True, callback=_parse_date)
@click.option("--endDate", "end_date", callback=_parse_date, help="Default: now")
@click.option(
    "--timestamped/--no-timestamped",
    default=True,
    show_default=True,
    help="Write into a <directory>/<epoch-ms> subdirectory",
)
@click.option("--skip-downloads", is_flag=True, help="Do not download asset binaries")
def export_cmd(
    directory: Path,
    key: str | None,
    token: str | None,
    branch: str | None,
    host: str | None,
    log_level: int,
    deadline: float | None,
    content_types: bool,
    global_fields: bool,
    entries: bool,
    assets: bool,
    taxonomies: bool,
    start_date: datetime,
    end_date: datetime | None,
    timestamped: bool,
    skip_downloads: bool,
) -> None:
    """Export content modified between --startDate and --endDate into DIRECTORY."""
    logger = configure_logging(log_level)
    if timestamped:
        directory = directory / str(int(time.time() * 1000))

    try:
        config = _build_config(key, token, branch, host)
        options = ExportOptions(
            start_date=start_date,
            end_date=end_date or datetime.now(timezone.utc),
            kinds=_selected_kinds(content_types, global_fields, entries, assets, taxonomies),
            download_assets=not skip_downloads,
            deadline=deadline,
        )
        with ContentstackClient(config) as client:
            result = ContentstackExporter(client).export(directory, options)
    except (ContentstackError, ValueError) as e:
        console.print(f"[bold red]Export failed:[/bold red] {e}")
        raise SystemExit(EXIT_RUN_FAILED) from e

    _print_report(f"Export to {result.directory}", result.report, result.counts)
    logger.info(f"Export written to {result.directory}")
    raise SystemExit(_exit_code(result.report))


@cli.command("import")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@_stack_options
@click.option("--overwrite", "-o", is_flag=True, help="Update entities that already exist")
def import_cmd(
    directory: Path,
    key: str | None,
    token: str | None,
    branch: str | None,
    host: str | None,
    log_level: int,
    deadline: float | None,
    content_types: bool,
    global_fields: bool,
    entries: bool,
    assets: bool,
    taxonomies: bool,
    overwrite: bool,
) -> None:
    """Import the snapshot in DIRECTORY."""
    configure_logging(log_level)

    try:
        config = _build_config(key, token, branch, host)
        options = ImportOptions(
            overwrite=overwrite,
            kinds=_selected_kinds(content_types, global_fields, entries, assets, taxonomies),
            deadline=deadline,
        )
        with ContentstackClient(config) as client:
            result = ContentstackImporter(client).import_snapshot(directory, options)
    except (ContentstackError, ValueError) as e:
        console.print(f"[bold red]Import failed:[/bold red] {e}")
        raise SystemExit(EXIT_RUN_FAILED) from e

    if result.content_type_order:
        console.print(f"Content type order: {', '.join(result.content_type_order)}")
    _print_report(f"Import from {result.directory}", result.report)
    raise SystemExit(_exit_code(result.report))


if __name__ == "__main__":
    cli()
