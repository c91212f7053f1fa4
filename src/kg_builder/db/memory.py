import time
from dataclasses import dataclass, field
from typing import Any

from kg_builder.db.helpers import DEFINES_REL, ENTITY_LABEL, FILE_LABEL, entity_properties
from kg_builder.exceptions import WriteError
from kg_builder.models import EmbeddedEntity


@dataclass(frozen=True)
class InMemorySourceFile:
    path: str
    created: int


@dataclass(frozen=True)
class InMemoryEntityNode:
    uid: str
    created: int
    properties: dict[str, Any] = field(compare=False)


@dataclass
class _Staged:
    files: dict[str, InMemorySourceFile]
    entities: dict[str, InMemoryEntityNode]
    defines: set[tuple[str, str]]


class InMemoryGraphDatabase:
    """Dict-backed graph with the same upsert contract as the Postgres store.

    Each ``upsert_entities`` call stages its writes on copies and swaps them in
    only when every entity was staged, mirroring a committed transaction.
    """

    def __init__(self) -> None:
        self.files: dict[str, InMemorySourceFile] = {}
        self.entities: dict[str, InMemoryEntityNode] = {}
        self.defines: set[tuple[str, str]] = set()
        self.upsert_calls: list[tuple[str, int]] = []

    async def ensure_ready(self) -> None:
        pass

    async def upsert_entities(self, path: str, items: list[EmbeddedEntity]) -> None:
        now_ms = int(time.time() * 1000)
        staged = _Staged(files=dict(self.files), entities=dict(self.entities), defines=set(self.defines))
        try:
            if path not in staged.files:
                staged.files[path] = InMemorySourceFile(path=path, created=now_ms)
            for item in items:
                self._stage_entity(staged, path, item, now_ms)
        except (TypeError, ValueError) as exc:
            raise WriteError(path, str(exc)) from exc

        self.files, self.entities, self.defines = staged.files, staged.entities, staged.defines
        self.upsert_calls.append((path, len(items)))

    def _stage_entity(self, staged: _Staged, path: str, item: EmbeddedEntity, now_ms: int) -> None:
        props = entity_properties(path, item)
        uid = props["uid"]
        existing = staged.entities.get(uid)
        created = existing.created if existing is not None else now_ms
        staged.entities[uid] = InMemoryEntityNode(uid=uid, created=created, properties=props)
        staged.defines.add((path, uid))

    async def count_nodes(self) -> dict[str, int]:
        return {
            FILE_LABEL: len(self.files),
            ENTITY_LABEL: len(self.entities),
            DEFINES_REL: len(self.defines),
        }

    async def dispose(self) -> None:
        pass
