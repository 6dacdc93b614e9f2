"""Unit tests for the embedding generator."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from case_tracker.core.exceptions import ProviderError
from case_tracker.features.documents.embedding import EmbeddingGenerator


def model_returning(*results):
    return Mock(aembed_query=AsyncMock(side_effect=list(results)))


class TestEmbed:
    def test_truncates_to_configured_dimensions(self):
        generator = EmbeddingGenerator(model_returning([0.5] * 3072), dimensions=768)
        vector = asyncio.run(generator.embed("contract"))
        assert len(vector) == 768

    def test_provider_failure_becomes_provider_error(self):
        generator = EmbeddingGenerator(model_returning(RuntimeError("429 quota")), dimensions=4)
        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(generator.embed("contract"))
        assert "429 quota" in exc_info.value.detail

    def test_short_vector_rejected(self):
        generator = EmbeddingGenerator(model_returning([0.1, 0.2]), dimensions=4)
        with pytest.raises(ProviderError):
            asyncio.run(generator.embed("contract"))

    def test_empty_vector_rejected(self):
        generator = EmbeddingGenerator(model_returning([]), dimensions=4)
        with pytest.raises(ProviderError):
            asyncio.run(generator.embed("contract"))

    def test_timeout(self):
        async def slow(text):
            await asyncio.sleep(1)
            return [0.1] * 4

        generator = EmbeddingGenerator(Mock(aembed_query=slow), dimensions=4, timeout_seconds=0.01)
        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(generator.embed("contract"))
        assert "timed out" in exc_info.value.detail

    def test_no_internal_retry(self):
        model = model_returning(RuntimeError("boom"), [0.1] * 4)
        generator = EmbeddingGenerator(model, dimensions=4)
        with pytest.raises(ProviderError):
            asyncio.run(generator.embed("contract"))
        assert model.aembed_query.await_count == 1


class TestEmbedMany:
    def test_one_failure_does_not_abort_others(self):
        async def embed_query(text):
            if text == "bad":
                raise RuntimeError("blocked content")
            return [0.1] * 4

        generator = EmbeddingGenerator(Mock(aembed_query=embed_query), dimensions=4, concurrency=2)
        results = asyncio.run(generator.embed_many(["a", "bad", "c"]))

        assert results[0] == [0.1] * 4
        assert isinstance(results[1], ProviderError)
        assert results[2] == [0.1] * 4
