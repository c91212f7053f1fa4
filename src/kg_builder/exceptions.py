class KgBuilderError(Exception):
    """Base class for errors raised while building the knowledge graph."""


class ReadError(KgBuilderError):
    """A discovered file could not be read. The file is skipped."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to read {path}: {reason}")
        self.path = path


class ParseError(KgBuilderError):
    """The grammar rejected a file. The file is skipped."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Parse failed {path}: {reason}")
        self.path = path


class EmbeddingError(KgBuilderError):
    """The embedding provider failed. Fatal to the run."""


class WriteError(KgBuilderError):
    """A graph transaction failed and was rolled back. Fatal to the run."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Graph upsert failed for {path}: {reason}")
        self.path = path
