import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from pydantic_settings import SettingsError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from kg_builder.config import Settings
from kg_builder.core.pipeline import IngestReport, run_pipeline
from kg_builder.core.ports.database import GraphDatabase
from kg_builder.db import InMemoryGraphDatabase, PostgresGraphDatabase, get_engine
from kg_builder.embeddings import create_embedding_provider
from kg_builder.exceptions import KgBuilderError

app = typer.Typer(
    name="kg-builder",
    help="Build a code knowledge graph: parse source files, embed functions and classes, upsert them into the graph.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _get_database(settings: Settings, dry_run: bool) -> GraphDatabase:
    if dry_run:
        return InMemoryGraphDatabase()
    return PostgresGraphDatabase(get_engine(settings.database_url))


def _print_report(report: IngestReport) -> None:
    table = Table(show_header=False, box=None)
    table.add_row("Files scanned", str(report.files_discovered))
    table.add_row("Files with entities", str(report.files_parsed))
    table.add_row("Files skipped", str(len(report.files_skipped)))
    table.add_row("Entities written", str(report.entities_written))
    console.print(table)


@app.command()
def ingest(
    base_dir: Annotated[Path | None, typer.Option(help="Root directory to scan (default: BASE_DIR or cwd).")] = None,
    batch_size: Annotated[int | None, typer.Option(min=1, help="Entities per upsert batch.")] = None,
    concurrency: Annotated[int | None, typer.Option(min=1, help="Parallel parse tasks.")] = None,
    dry_run: Annotated[bool, typer.Option(help="Write to an in-memory graph instead of the database.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level.")] = False,
) -> None:
    """Discover, parse, embed and upsert every supported source file."""
    try:
        settings = Settings()
    except (ValidationError, SettingsError) as exc:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    configure_logging("DEBUG" if verbose else settings.log_level)

    root = base_dir or settings.base_dir
    database = _get_database(settings, dry_run)
    embedder = create_embedding_provider(settings)

    async def _run() -> IngestReport:
        try:
            return await run_pipeline(
                database,
                embedder,
                root,
                batch_size=batch_size or settings.batch_size,
                concurrency=concurrency or settings.concurrency,
                exclude_dirs=settings.exclude_dirs,
                reject_syntax_errors=settings.skip_files_with_syntax_errors,
            )
        finally:
            await embedder.close()
            await database.dispose()

    try:
        report = asyncio.run(_run())
    except KgBuilderError as exc:
        console.print(f"[red]Pipeline failed:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    _print_report(report)
    console.print("[green]Pipeline completed.[/green]")


def main() -> None:
    app()
