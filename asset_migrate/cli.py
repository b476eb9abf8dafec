"""Command-line interface for the asset migration tool."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import structlog
import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from asset_migrate.config import Config
from asset_migrate.exceptions import AuthError, TransportError
from asset_migrate.orchestration import (
    CollectionDescriptor,
    CollectionResult,
    MigrationOrchestrator,
    MigrationResults,
)

# Constants
MAX_ERRORS_TO_DISPLAY = 10

# Create Typer app
app = typer.Typer(
    name="asset-migrate",
    help="Migrate domain object instances between asset service instances",
    add_completion=False,
)

console = Console()


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Setup structured logging.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json or text).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_file: Path | None) -> Config:
    """Load configuration from a file if given, otherwise from the environment."""
    if config_file is not None:
        return Config.from_file(config_file)
    return Config.from_env()


class RichReporter:
    """Reporter that drives one rich progress bar per collection."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self._tasks: dict[str, TaskID] = {}

    def tokens_acquired(self) -> None:
        self.progress.console.print("[bold green]OK[/bold green] tokens acquired")

    def collections_discovered(self, collections: list[CollectionDescriptor]) -> None:
        total = sum(c.count for c in collections)
        self.progress.console.print(
            f"Found [cyan]{len(collections)}[/cyan] domain objects with a total of "
            f"[cyan]{total}[/cyan] domain object instances"
        )
        for collection in collections:
            self._tasks[collection.name] = self.progress.add_task(
                f"Loading {collection.name}",
                total=collection.count or None,
            )

    def page_loaded(self, collection: str, loaded: int, expected: int) -> None:
        task_id = self._tasks.get(collection)
        if task_id is not None:
            self.progress.update(task_id, completed=loaded)

    def chunk_posted(self, collection: str, size: int) -> None:
        task_id = self._tasks.get(collection)
        if task_id is not None:
            self.progress.update(task_id, description=f"Posting {collection}")

    def collection_finished(self, result: CollectionResult) -> None:
        task_id = self._tasks.get(result.name)
        if task_id is not None:
            mark = "[green]✓[/green]" if result.succeeded else "[red]✗[/red]"
            self.progress.update(task_id, description=f"{mark} {result.name}")
        style = "green" if result.succeeded else "red"
        self.progress.console.print(f"[{style}]{result.name}: {result.message}[/{style}]")

    def run_finished(self, results: MigrationResults) -> None:
        pass


@app.command()
def migrate(
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (optional, uses environment variables by default)",
        ),
    ] = None,
    collections: Annotated[
        str | None,
        typer.Option(
            "--collections",
            help="Comma-separated list of collections to migrate (if not specified, all collections will be migrated)",
        ),
    ] = None,
    page_size: Annotated[
        int | None,
        typer.Option("--page-size", help="Records requested per page from the origin"),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Records posted per request to the destination"),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            "-f",
            help="Log format (json or text)",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write migration results (or the dry run listing) as JSON to this file",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Acquire tokens and list collections without transferring records",
        ),
    ] = False,
) -> None:
    """Migrate domain object instances from the origin to the destination tenant.

    Examples:
        asset-migrate migrate --config asset-config.json
        asset-migrate migrate --collections sensors,turbines --chunk-size 500
        asset-migrate migrate --dry-run
    """
    logger = structlog.get_logger(__name__)

    try:
        config = load_config(config_file)

        # Override config with CLI arguments
        if collections:
            config.collections = [c.strip() for c in collections.split(",") if c.strip()]
        if page_size is not None:
            config.migration.page_size = page_size
        if chunk_size is not None:
            config.migration.chunk_size = chunk_size
        if log_level is not None:
            config.logging.level = log_level
        if log_format is not None:
            config.logging.format = log_format
    except Exception as e:
        setup_logging(log_level or "WARNING", log_format or "text")
        console.print(f"[red]Invalid configuration: {e}[/red]")
        logger.error("Invalid configuration", error=str(e))
        raise typer.Exit(code=1) from e

    setup_logging(config.logging.level, config.logging.format)

    if dry_run:
        console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]")
        discovered = asyncio.run(_run_dry_run(config))
        if discovered is None:
            raise typer.Exit(code=1)
        if output is not None:
            _write_json(
                output,
                {
                    "dry_run": True,
                    "collections": [
                        {"name": c.name, "count": c.count} for c in discovered
                    ],
                },
            )
        raise typer.Exit(code=0)

    try:
        results = asyncio.run(_run_migration(config))
    except KeyboardInterrupt:
        console.print("\n[red]Migration interrupted by user[/red]")
        logger.info("Migration interrupted by user")
        raise typer.Exit(code=1) from None

    _display_results(results)

    if output is not None:
        _write_json(output, results.to_dict())

    if results.success:
        console.print("\n[green]Migration completed successfully![/green]")
    else:
        console.print("\n[red]Migration failed![/red]")
        raise typer.Exit(code=1)


def _write_json(path: Path, data: dict) -> None:
    """Write a JSON document, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    console.print(f"Results saved to: {path}")


async def _run_migration(config: Config) -> MigrationResults:
    """Run the migration with a progress bar per collection."""
    console.print(
        f"[bold]Retrieving tokens for origin [cyan]{config.origin.zone_id}[/cyan] "
        f"and destination [cyan]{config.destination.zone_id}[/cyan][/bold]"
    )
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=False,
    ) as progress:
        orchestrator = MigrationOrchestrator(config, reporter=RichReporter(progress))
        return await orchestrator.migrate_all()


async def _run_dry_run(config: Config) -> list[CollectionDescriptor] | None:
    """Acquire tokens and list collections without moving any records.

    Returns:
        The collections that would be migrated, or None if discovery failed.
    """
    orchestrator = MigrationOrchestrator(config)
    try:
        collections = await orchestrator.discover()
    except AuthError as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print("[bold]Please check your UAA credentials[/bold]")
        return None
    except TransportError as e:
        console.print(f"[red]✗ There was an error listing asset domain objects: {e}[/red]")
        return None

    table = Table(title="Domain Objects")
    table.add_column("Collection", style="cyan")
    table.add_column("Instances", style="magenta", justify="right")
    for collection in collections:
        table.add_row(collection.name, str(collection.count))
    console.print(table)
    console.print(
        f"[green]✓[/green] {len(collections)} domain objects with "
        f"{sum(c.count for c in collections)} instances would be migrated"
    )
    return collections


def _display_results(results: MigrationResults) -> None:
    """Display migration results in formatted tables."""
    if results.message and not results.collections:
        style = "green" if results.success else "red"
        console.print(f"\n[{style}]{results.message}[/{style}]")
        if results.error:
            console.print(f"  {results.error}")
        return

    summary = results.summary()

    summary_table = Table(title="Migration Summary")
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Count", style="magenta", justify="right")
    summary_table.add_row("Domain Objects", str(summary["total_collections"]))
    summary_table.add_row("Migrated", str(summary["migrated_collections"]))
    summary_table.add_row("Failed", str(summary["failed_collections"]))
    summary_table.add_row("Instances Expected", str(summary["expected_records"]))
    summary_table.add_row("Instances Loaded", str(summary["loaded_records"]))
    summary_table.add_row("Instances Posted", str(summary["uploaded_records"]))

    console.print("\n")
    console.print(summary_table)

    if results.collections:
        details = Table(title="Domain Object Details")
        details.add_column("Collection", style="cyan")
        details.add_column("Expected", justify="right")
        details.add_column("Loaded", justify="right")
        details.add_column("Posted", justify="right", style="green")
        details.add_column("Status")
        for result in results.collections:
            status_style = "green" if result.succeeded else "red"
            details.add_row(
                result.name,
                str(result.expected_count),
                str(result.loaded),
                str(result.uploaded),
                f"[{status_style}]{result.status.value}[/{status_style}]",
            )
        console.print("\n")
        console.print(details)

    errors = [r for r in results.collections if r.error]
    if errors:
        console.print("\n[red]Errors encountered:[/red]")
        for i, result in enumerate(errors[:MAX_ERRORS_TO_DISPLAY], 1):
            console.print(f"  {i}. {result.name}: {result.error}")

        if len(errors) > MAX_ERRORS_TO_DISPLAY:
            console.print(
                f"  ... and {len(errors) - MAX_ERRORS_TO_DISPLAY} more errors"
            )


@app.command()
def validate(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to configuration file"),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            "-l",
            help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        ),
    ] = "INFO",
) -> None:
    """Validate configuration and acquire tokens for both tenants."""
    setup_logging(log_level, "text")
    logger = structlog.get_logger(__name__)

    try:
        console.print("[blue]Validating configuration...[/blue]")
        config = load_config(config_file)
        console.print("[green]✓[/green] Configuration loaded successfully")

        console.print("[blue]Retrieving tokens...[/blue]")
        asyncio.run(_test_tokens(config))

        console.print("[green]✓[/green] All validation checks passed!")

    except Exception as e:
        console.print(f"[red]✗ Validation failed: {e}[/red]")
        logger.error("Validation failed", error=str(e))
        raise typer.Exit(code=1) from e


async def _test_tokens(config: Config) -> None:
    """Acquire both tokens, raising AuthError if either fails."""
    from asset_migrate.auth import acquire_token_pair
    from asset_migrate.client import AssetClient

    async with AssetClient(config.migration) as client:
        origin_token, dest_token = await acquire_token_pair(
            client.http, config.origin, config.destination
        )
    console.print(f"[green]✓[/green] Origin zone: {origin_token.zone_id}")
    console.print(f"[green]✓[/green] Destination zone: {dest_token.zone_id}")


@app.command()
def version() -> None:
    """Show version information."""
    from asset_migrate import __version__

    console.print(f"asset-migrate version {__version__}")


if __name__ == "__main__":
    app()
