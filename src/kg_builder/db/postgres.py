import asyncio
import logging
import time
from collections import defaultdict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from kg_builder.db.cypher import ensure_graph, execute_cypher, fetch_cypher
from kg_builder.db.helpers import (
    DEFINES_REL,
    ENTITY_LABEL,
    FILE_LABEL,
    GRAPH_NAME,
    entity_properties,
    escape_str,
    parse_agtype_int,
    to_cypher_props,
)
from kg_builder.exceptions import WriteError
from kg_builder.models import EmbeddedEntity

logger = logging.getLogger(__name__)


def build_file_merge(path: str, now_ms: int) -> str:
    return (
        f"MERGE (f:{FILE_LABEL} {{path: '{escape_str(path)}'}}) "
        f"SET f.created = coalesce(f.created, {now_ms}) "
        "RETURN id(f)"
    )


def build_entity_merge(path: str, item: EmbeddedEntity, now_ms: int) -> str:
    """Upsert one Entity and its DEFINES edge.

    The property map is replaced wholesale so fields from an earlier version of
    the node cannot survive; only ``created`` is carried over.
    """
    props = entity_properties(path, item)
    return (
        f"MERGE (e:{ENTITY_LABEL} {{uid: '{escape_str(props['uid'])}'}}) "
        f"WITH e, coalesce(e.created, {now_ms}) AS created "
        f"SET e = {to_cypher_props(props)} "
        "SET e.created = created "
        "WITH e "
        f"MATCH (f:{FILE_LABEL} {{path: '{escape_str(path)}'}}) "
        f"MERGE (f)-[:{DEFINES_REL}]->(e) "
        "RETURN id(e)"
    )


class PostgresGraphDatabase:
    """Graph store on PostgreSQL with the Apache AGE extension."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._graph_ready = False
        self._path_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def ensure_ready(self) -> None:
        """Ensure AGE extension is loaded and graph exists."""
        try:
            await ensure_graph(self._engine, GRAPH_NAME)
        except (SQLAlchemyError, OSError) as exc:
            raise WriteError(GRAPH_NAME, str(exc)) from exc
        self._graph_ready = True

    async def upsert_entities(self, path: str, items: list[EmbeddedEntity]) -> None:
        """Write one file's entities in a single transaction.

        On failure the transaction is rolled back and ``WriteError`` raised;
        earlier calls stay committed.
        """
        if not self._graph_ready:
            await self.ensure_ready()

        t0 = time.perf_counter()
        now_ms = int(time.time() * 1000)
        async with self._path_locks[path]:
            try:
                async with self._engine.begin() as conn:
                    await execute_cypher(self._engine, build_file_merge(path, now_ms), conn=conn)
                    for item in items:
                        await execute_cypher(self._engine, build_entity_merge(path, item, now_ms), conn=conn)
            except (SQLAlchemyError, OSError) as exc:
                logger.error("Graph upsert failed for %s, rolled back %d entities", path, len(items))
                raise WriteError(path, str(exc)) from exc

        logger.debug("upsert %s: %d entities in %.2fs", path, len(items), time.perf_counter() - t0)

    async def count_nodes(self) -> dict[str, int]:
        """Return node and edge counts keyed by label."""
        counts: dict[str, int] = {}
        for key, cypher in (
            (FILE_LABEL, f"MATCH (f:{FILE_LABEL}) RETURN count(f)"),
            (ENTITY_LABEL, f"MATCH (e:{ENTITY_LABEL}) RETURN count(e)"),
            (DEFINES_REL, f"MATCH (:{FILE_LABEL})-[r:{DEFINES_REL}]->(:{ENTITY_LABEL}) RETURN count(r)"),
        ):
            rows = await fetch_cypher(self._engine, cypher, columns=1)
            counts[key] = parse_agtype_int(rows[0][0]) if rows else 0
        return counts

    async def dispose(self) -> None:
        await self._engine.dispose()
