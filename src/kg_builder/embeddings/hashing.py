import hashlib


def hash_embedding(text: str, dimensions: int) -> list[float]:
    """Expand the SHA-256 digest of ``text`` into ``dimensions`` floats in [-0.5, 0.5]."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    repeats = -(-dimensions // len(digest))
    expanded = (digest * repeats)[:dimensions]
    return [b / 255 - 0.5 for b in expanded]


class HashEmbeddingProvider:
    """Deterministic offline embeddings for development and tests.

    Identical text always maps to the identical vector; the vectors carry no
    semantic similarity.
    """

    def __init__(self, dimensions: int = 1536) -> None:
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        return hash_embedding(text, self.dimensions)

    async def close(self) -> None:
        pass
