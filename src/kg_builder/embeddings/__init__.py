from kg_builder.embeddings.base import EmbeddingProvider, create_embedding_provider
from kg_builder.embeddings.hashing import HashEmbeddingProvider, hash_embedding
from kg_builder.embeddings.remote import OpenAIEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
    "hash_embedding",
]
