import logging

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider:
    """Embeddings from the OpenAI embeddings endpoint.

    The requested ``dimensions`` are sent with every call, so the service
    returns vectors of the same length as the hash fallback. Errors from the
    client propagate unchanged; retrying is left to the client's own
    ``max_retries`` setting.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        base_url: str | None = None,
        max_retries: int = 0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=max_retries)
        logger.info("Using OpenAI embeddings (model=%s, dimensions=%d)", model, dimensions)

    async def embed(self, text: str) -> list[float]:
        response = await self._client.embeddings.create(model=self.model, input=text, dimensions=self.dimensions)
        vector = list(response.data[0].embedding)
        if len(vector) != self.dimensions:
            raise ValueError(f"{self.model} returned {len(vector)} dimensions, expected {self.dimensions}")
        return vector

    async def close(self) -> None:
        await self._client.close()
