from enum import Enum

from pydantic import BaseModel, Field, model_validator

ANON_NAME = "<anon>"


class EntityKind(str, Enum):
    FUNCTION = "Function"
    CLASS = "Class"


class Entity(BaseModel):
    kind: EntityKind
    name: str = Field(default=ANON_NAME, min_length=1)
    language: str
    start_line: int = Field(ge=1)
    end_line: int = Field(ge=1)
    snippet: str
    doc: str = ""

    @model_validator(mode="after")
    def _check_span(self) -> "Entity":
        if self.start_line > self.end_line:
            raise ValueError(f"start_line {self.start_line} is after end_line {self.end_line}")
        return self


class ParsedFile(BaseModel):
    path: str
    relative_path: str
    language: str
    entities: list[Entity]


class EmbeddedEntity(BaseModel):
    entity: Entity
    embedding: list[float]
