from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


def get_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Async engine whose pooled connections have AGE loaded and on the search path."""
    engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True)

    @event.listens_for(engine.sync_engine, "connect")
    def _prepare_age_session(dbapi_conn: Any, connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        try:
            try:
                cursor.execute("LOAD 'age'")
            except Exception:  # noqa: BLE001
                # The extension does not exist until ensure_graph has run.
                dbapi_conn.rollback()
            cursor.execute('SET search_path = public, ag_catalog, "$user"')
        finally:
            cursor.close()

    return engine
