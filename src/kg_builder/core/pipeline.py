import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from kg_builder.config import DEFAULT_EXCLUDE_DIRS
from kg_builder.core.blob import compose_blob
from kg_builder.core.discovery import discover_files
from kg_builder.core.extract import extract_entities_from_file
from kg_builder.core.languages import language_for_path, supported_extensions
from kg_builder.core.ports.database import GraphDatabase
from kg_builder.embeddings import EmbeddingProvider
from kg_builder.exceptions import EmbeddingError, KgBuilderError, ParseError, ReadError
from kg_builder.models import EmbeddedEntity, ParsedFile

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    DISCOVERING = "discovering"
    PARSING = "parsing"
    EMBEDDING = "embedding"
    DONE = "done"
    FAILED = "failed"


@dataclass
class IngestReport:
    files_discovered: int = 0
    files_parsed: int = 0
    files_skipped: list[str] = field(default_factory=list)
    entities_written: int = 0
    batches_flushed: int = 0
    stage: PipelineStage = PipelineStage.DISCOVERING


def _relative_path(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


async def _parse_one(
    path: Path,
    root: Path,
    semaphore: asyncio.Semaphore,
    reject_syntax_errors: bool,
    skipped: list[str],
) -> ParsedFile | None:
    spec = language_for_path(path)
    if spec is None:
        return None

    async with semaphore:
        try:
            entities = await asyncio.to_thread(extract_entities_from_file, path, spec, reject_syntax_errors)
        except (ReadError, ParseError) as exc:
            logger.warning("%s", exc)
            skipped.append(str(path))
            return None

    if not entities:
        return None
    return ParsedFile(
        path=str(path),
        relative_path=_relative_path(path, root),
        language=spec.language_id,
        entities=entities,
    )


async def parse_files(
    files: list[Path],
    root: Path,
    concurrency: int = 4,
    reject_syntax_errors: bool = True,
) -> tuple[list[ParsedFile], list[str]]:
    """Parse and extract ``files`` with at most ``concurrency`` tasks in flight.

    Returns ``(parsed, skipped)``: files with at least one entity, in input
    order, and the paths dropped because they could not be read or parsed.
    """
    semaphore = asyncio.Semaphore(concurrency)
    skipped: list[str] = []
    results = await asyncio.gather(
        *(_parse_one(path, root, semaphore, reject_syntax_errors, skipped) for path in files)
    )
    return [r for r in results if r is not None], sorted(skipped)


def group_by_file(batch: Iterable[tuple[str, EmbeddedEntity]]) -> dict[str, list[EmbeddedEntity]]:
    grouped: dict[str, list[EmbeddedEntity]] = {}
    for path, item in batch:
        grouped.setdefault(path, []).append(item)
    return grouped


async def _flush(database: GraphDatabase, batch: list[tuple[str, EmbeddedEntity]], report: IngestReport) -> None:
    grouped = group_by_file(batch)
    for path, items in grouped.items():
        await database.upsert_entities(path, items)
        report.entities_written += len(items)
    report.batches_flushed += 1
    logger.info("Flushed batch of %d entities across %d files", len(batch), len(grouped))


async def embed_and_upsert(
    parsed: list[ParsedFile],
    database: GraphDatabase,
    embedder: EmbeddingProvider,
    batch_size: int,
    report: IngestReport,
) -> None:
    """Embed entities one at a time in file order and upsert them in batches."""
    batch: list[tuple[str, EmbeddedEntity]] = []
    for parsed_file in parsed:
        file_path = parsed_file.relative_path
        for entity in parsed_file.entities:
            blob = compose_blob(entity, file_path)
            try:
                embedding = await embedder.embed(blob)
            except Exception as exc:  # noqa: BLE001
                raise EmbeddingError(f"Embedding failed for {file_path}:{entity.start_line}: {exc}") from exc
            batch.append((file_path, EmbeddedEntity(entity=entity, embedding=embedding)))

            if len(batch) >= batch_size:
                await _flush(database, batch, report)
                batch = []

    if batch:
        await _flush(database, batch, report)


async def run_pipeline(
    database: GraphDatabase,
    embedder: EmbeddingProvider,
    root: str | Path,
    batch_size: int = 200,
    concurrency: int = 4,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    reject_syntax_errors: bool = True,
) -> IngestReport:
    """Discover, parse, embed and upsert every supported file under ``root``.

    Read and parse failures skip the file. Embedding and write failures abort
    the run; batches committed before the failure stay in the graph.
    """
    root_path = Path(root).resolve()
    report = IngestReport()
    t_total = time.perf_counter()

    try:
        report.stage = PipelineStage.DISCOVERING
        files = discover_files(root_path, supported_extensions(), exclude_dirs)
        report.files_discovered = len(files)
        logger.info("Found %d source files under %s", len(files), root_path)

        report.stage = PipelineStage.PARSING
        t0 = time.perf_counter()
        parsed, skipped = await parse_files(files, root_path, concurrency, reject_syntax_errors)
        report.files_parsed = len(parsed)
        report.files_skipped = skipped
        logger.info(
            "Parsed %d files with entities (%d skipped) in %.2fs", len(parsed), len(skipped), time.perf_counter() - t0
        )

        report.stage = PipelineStage.EMBEDDING
        if parsed:
            await database.ensure_ready()
            await embed_and_upsert(parsed, database, embedder, batch_size, report)
    except KgBuilderError:
        logger.error("Pipeline failed during %s stage", report.stage.value)
        report.stage = PipelineStage.FAILED
        raise

    report.stage = PipelineStage.DONE
    logger.info(
        "Wrote %d entities in %d batches, %.2fs total",
        report.entities_written,
        report.batches_flushed,
        time.perf_counter() - t_total,
    )
    return report
