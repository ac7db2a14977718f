"""OpenAI embedding generation wrapper."""

import logging
import os
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from .errors import ProviderError

logger = logging.getLogger(__name__)


class EmbeddingGenerator:
    """OpenAI embedding API wrapper for summary memories.

    Uses text-embedding-3-small by default:
    - 1536 dimensions
    - Deterministic for a fixed model and input
    - Every vector it returns has exactly ``dimensions`` floats
    """

    MAX_CONTENT_LENGTH = 100_000

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        dimensions: int = 1536,
        timeout: float = 30.0,
    ):
        self.model = model
        self.dimensions = dimensions

        # Validate API key is provided
        final_api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not final_api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.client = AsyncOpenAI(api_key=final_api_key, timeout=timeout, max_retries=0)

    async def generate(self, content: str) -> list[float]:
        """Generate embedding for single content.

        Args:
            content: Text to embed (non-empty, max 100,000 chars)

        Returns:
            Vector of ``dimensions`` floats

        Raises:
            ValueError: If content is empty or exceeds size limit
            ProviderError: If the API call fails or the response is malformed
        """
        if not content or not content.strip():
            raise ValueError("Content cannot be empty")
        if len(content) > self.MAX_CONTENT_LENGTH:
            raise ValueError(
                f"Content too long: {len(content)} chars (max {self.MAX_CONTENT_LENGTH})"
            )

        try:
            response = await self.client.embeddings.create(model=self.model, input=content)
        except OpenAIError as e:
            logger.error("Embedding request to %s failed: %s", self.model, e)
            raise ProviderError(f"Embedding provider error: {e}") from e

        return self._parse(response)

    def _parse(self, response) -> list[float]:
        data = getattr(response, "data", None)
        if not data:
            raise ProviderError("Embedding response contained no data")

        embedding = getattr(data[0], "embedding", None)
        if not isinstance(embedding, list) or not all(
            isinstance(x, (int, float)) for x in embedding
        ):
            raise ProviderError("Embedding response is not a list of floats")

        if len(embedding) != self.dimensions:
            raise ProviderError(
                f"Embedding has {len(embedding)} dimensions, expected {self.dimensions}"
            )

        return [float(x) for x in embedding]
