from typing import Protocol

from kg_builder.models import EmbeddedEntity


class GraphDatabase(Protocol):
    async def ensure_ready(self) -> None: ...

    async def upsert_entities(self, path: str, items: list[EmbeddedEntity]) -> None: ...

    async def count_nodes(self) -> dict[str, int]: ...

    async def dispose(self) -> None: ...
