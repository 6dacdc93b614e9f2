"""
Documents feature: embedding generation.
Wraps the LLM provider's embedding model with a per-call time bound.
"""

import asyncio
import logging

from langchain_core.embeddings import Embeddings

from case_tracker.core.exceptions import ProviderError

logger = logging.getLogger(__name__)


class EmbeddingGenerator:
    """One bounded-time embedding call per text, no internal retry.

    Retrying is the caller's decision; a failed call surfaces as ProviderError.
    """

    def __init__(
        self,
        model: Embeddings,
        dimensions: int,
        timeout_seconds: float = 30.0,
        concurrency: int = 8,
    ):
        self.model = model
        self.dimensions = dimensions
        self.timeout_seconds = timeout_seconds
        self.concurrency = max(1, concurrency)

    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Returns:
            A list of floats, truncated to the configured dimensionality.

        Raises:
            ProviderError: On quota errors, timeouts, or malformed vectors.
        """
        try:
            vector = await asyncio.wait_for(
                self.model.aembed_query(text), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            raise ProviderError("Embedding", f"timed out after {self.timeout_seconds}s")
        except Exception as e:
            raise ProviderError("Embedding", str(e)) from e
        return self._validate(vector)

    async def embed_many(self, texts: list[str]) -> list[list[float] | ProviderError]:
        """Embed texts concurrently. Each slot holds a vector or the error for that text."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _one(text: str) -> list[float] | ProviderError:
            async with semaphore:
                try:
                    return await self.embed(text)
                except ProviderError as e:
                    return e

        return list(await asyncio.gather(*(_one(t) for t in texts)))

    def _validate(self, vector) -> list[float]:
        if not isinstance(vector, (list, tuple)) or not vector:
            raise ProviderError("Embedding", "empty or malformed embedding response")
        if len(vector) < self.dimensions:
            raise ProviderError(
                "Embedding",
                f"expected {self.dimensions} dimensions, got {len(vector)}",
            )
        try:
            # Gemini returns 3072 dims; Matryoshka embeddings truncate cleanly
            return [float(v) for v in vector[: self.dimensions]]
        except (TypeError, ValueError) as e:
            raise ProviderError("Embedding", f"non-numeric embedding values: {e}") from e
