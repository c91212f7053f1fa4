from typing import Protocol

from kg_builder.config import Settings
from kg_builder.embeddings.hashing import HashEmbeddingProvider
from kg_builder.embeddings.remote import OpenAIEmbeddingProvider


class EmbeddingProvider(Protocol):
    dimensions: int

    async def embed(self, text: str) -> list[float]: ...

    async def close(self) -> None: ...


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Pick the embedding strategy once, from configuration.

    A configured OpenAI key selects the remote provider; otherwise the
    deterministic hash provider is used.
    """
    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else ""
    if api_key:
        return OpenAIEmbeddingProvider(
            api_key=api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            base_url=settings.openai_base_url,
            max_retries=settings.openai_max_retries,
        )
    return HashEmbeddingProvider(dimensions=settings.embedding_dimensions)
