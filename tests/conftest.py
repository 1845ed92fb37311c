import zlib

import numpy as np
import pytest

from webwhisper.embedding.config import OpenAIEmbeddingConfig
from webwhisper.embedding.provider import AbstractEmbeddingProvider
from webwhisper.index.adapters.memory import InMemoryVectorIndex

DIMENSIONS = 16


class HashEmbeddingProvider(AbstractEmbeddingProvider):
    """Deterministic unit vectors seeded from the text; equal text, equal vector."""

    def __init__(self, dimensions: int = DIMENSIONS) -> None:
        super().__init__(
            OpenAIEmbeddingConfig(model="hash-embedding", dimensions=dimensions, api_key="test")
        )
        self.calls: list[list[str]] = []

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vector_for(text) for text in texts]

    def vector_for(self, text: str) -> list[float]:
        rng = np.random.default_rng(zlib.crc32(text.encode("utf-8")))
        vector = rng.normal(size=self.dimensions)
        return [float(v) for v in vector / np.linalg.norm(vector)]


@pytest.fixture
def embedding_provider() -> HashEmbeddingProvider:
    return HashEmbeddingProvider()


@pytest.fixture
def memory_index() -> InMemoryVectorIndex:
    index = InMemoryVectorIndex(DIMENSIONS)
    index.initialize()
    return index
