from kg_builder.db.engine import get_engine
from kg_builder.db.helpers import (
    DEFINES_REL,
    ENTITY_LABEL,
    FILE_LABEL,
    GRAPH_NAME,
    make_entity_uid,
)
from kg_builder.db.memory import (
    InMemoryEntityNode,
    InMemoryGraphDatabase,
    InMemorySourceFile,
)
from kg_builder.db.postgres import PostgresGraphDatabase

__all__ = [
    "DEFINES_REL",
    "ENTITY_LABEL",
    "FILE_LABEL",
    "GRAPH_NAME",
    "InMemoryEntityNode",
    "InMemoryGraphDatabase",
    "InMemorySourceFile",
    "PostgresGraphDatabase",
    "get_engine",
    "make_entity_uid",
]
