from abc import ABC, abstractmethod

import structlog

from webwhisper.embedding.config import AbstractEmbeddingConfig
from webwhisper.errors import EmbeddingUnavailable, ValidationError

_logger = structlog.get_logger()


class AbstractEmbeddingProvider(ABC):
    """Turns text into fixed-length vectors.

    Adapters implement ``_embed_documents`` (and optionally ``_embed_query``)
    against their SDK. Any SDK or network failure surfaces as
    :class:`EmbeddingUnavailable`; retry policy belongs to the caller.
    """

    def __init__(self, config: AbstractEmbeddingConfig) -> None:
        self.config = config

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    @abstractmethod
    def _embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def _embed_query(self, text: str) -> list[float]:
        return self._embed_documents([text])[0]

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValidationError("Cannot embed empty text")
        try:
            return self._embed_query(text)
        except Exception as exc:
            _logger.error("embedding_failed", model=self.config.model, error=str(exc))
            raise EmbeddingUnavailable(f"{self.config.model}: {exc}") from exc

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in as few round-trips as the provider allows, keeping order."""
        if not texts:
            return []
        try:
            vectors = self._embed_documents(texts)
        except Exception as exc:
            _logger.error(
                "embedding_batch_failed",
                model=self.config.model,
                batch_size=len(texts),
                error=str(exc),
            )
            raise EmbeddingUnavailable(f"{self.config.model}: {exc}") from exc

        if len(vectors) != len(texts):
            raise EmbeddingUnavailable(
                f"{self.config.model} returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return vectors
