"""OpenAI embedding service for generating vector embeddings."""

from typing import Protocol

from openai import AsyncOpenAI

from storefront_search.core.config import settings


class EmbeddingProvider(Protocol):
    """Anything that can turn one text into a fixed-length vector."""

    async def generate_embedding(self, text: str) -> list[float]: ...


def normalize_text(text: str) -> str:
    """Collapse newlines to spaces before embedding."""
    return text.replace("\r\n", " ").replace("\n", " ")


class EmbeddingService:
    """Service for generating embeddings using OpenAI."""

    def __init__(
        self,
        *,
        model: str | None = None,
        dimensions: int | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.embedding_timeout_seconds,
            max_retries=settings.embedding_max_retries,
        )

    async def generate_embedding(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: The text to embed

        Returns:
            List of floats representing the embedding vector
        """
        response = await self.client.embeddings.create(
            input=normalize_text(text),
            model=self.model,
            dimensions=self.dimensions,
        )
        return response.data[0].embedding

    async def generate_embeddings_batch(
        self,
        texts: list[str],
    ) -> list[list[float]]:
        """Generate embeddings for multiple texts in batch.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors in the same order as input
        """
        if not texts:
            return []

        # OpenAI allows up to 2048 inputs per batch
        response = await self.client.embeddings.create(
            input=[normalize_text(t) for t in texts],
            model=self.model,
            dimensions=self.dimensions,
        )
        # Sort by index to match input order
        return [item.embedding for item in sorted(response.data, key=lambda d: d.index)]


# Singleton instance
_embedding_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    """Get or create embedding service instance."""
    global _embedding_service  # noqa: PLW0603
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service
