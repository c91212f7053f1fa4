import contextlib
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from kg_builder.db.helpers import GRAPH_NAME


async def ensure_graph(engine: AsyncEngine, name: str = GRAPH_NAME) -> None:
    async with engine.begin() as conn:
        # The extension may already be installed by a role without CREATE rights.
        with contextlib.suppress(DBAPIError):
            async with conn.begin_nested():
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS age"))
        await conn.execute(text("LOAD 'age'"))
        await conn.execute(text('SET search_path = public, ag_catalog, "$user"'))

        res = await conn.execute(
            text("SELECT count(*) FROM ag_catalog.ag_graph WHERE name = :name"),
            {"name": name},
        )
        if int(res.scalar_one()) == 0:
            await conn.execute(text("SELECT create_graph(:name)"), {"name": name})


@asynccontextmanager
async def _use_conn(engine: AsyncEngine, conn: AsyncConnection | None = None) -> AsyncIterator[AsyncConnection]:
    """Yield the caller's connection, or open a transaction that commits on exit."""
    if conn is not None:
        yield conn
        return
    async with engine.begin() as new_conn:
        yield new_conn


def wrap_cypher(cypher: str, columns: int, graph: str = GRAPH_NAME) -> str:
    """Embed ``cypher`` in an ``ag_catalog.cypher`` call returning ``columns`` agtype columns.

    A random dollar-quote tag keeps quotes inside the query from ending the literal.
    """
    tag = f"q_{uuid.uuid4().hex}"
    col_defs = ", ".join(f"c{i} agtype" for i in range(max(columns, 1)))
    return f"SELECT * FROM ag_catalog.cypher('{graph}', ${tag}$ {cypher} ${tag}$) AS ({col_defs})"


async def execute_cypher(engine: AsyncEngine, cypher: str, conn: AsyncConnection | None = None) -> None:
    async with _use_conn(engine, conn) as c:
        await c.exec_driver_sql(wrap_cypher(cypher, 1))


async def fetch_cypher(
    engine: AsyncEngine, cypher: str, columns: int, conn: AsyncConnection | None = None
) -> list[tuple[Any, ...]]:
    async with _use_conn(engine, conn) as c:
        result = await c.exec_driver_sql(wrap_cypher(cypher, columns))
        return [tuple(row) for row in result.fetchall()]
