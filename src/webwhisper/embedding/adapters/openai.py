import structlog
from openai import OpenAI

from webwhisper.embedding.config import OpenAIEmbeddingConfig
from webwhisper.embedding.provider import AbstractEmbeddingProvider

_logger = structlog.get_logger()

_MAX_BATCH_SIZE = 500  # Keep well under OpenAI's 300k token-per-request limit

# Only the text-embedding-3 family accepts a requested output size.
_SHORTENABLE_PREFIX = "text-embedding-3"


class OpenAIEmbeddingProvider(AbstractEmbeddingProvider):
    config: OpenAIEmbeddingConfig

    def __init__(self, config: OpenAIEmbeddingConfig) -> None:
        super().__init__(config)
        self._client = OpenAI(
            api_key=config.api_key,
            base_url=config.api_url,
        )

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []

        for offset in range(0, len(texts), _MAX_BATCH_SIZE):
            batch = texts[offset : offset + _MAX_BATCH_SIZE]
            _logger.debug("embedding_batch", batch_size=len(batch), offset=offset)

            if self.config.model.startswith(_SHORTENABLE_PREFIX):
                response = self._client.embeddings.create(
                    model=self.config.model,
                    input=batch,
                    dimensions=self.config.dimensions,
                )
            else:
                response = self._client.embeddings.create(model=self.config.model, input=batch)

            ordered = sorted(response.data, key=lambda item: item.index)
            vectors.extend(item.embedding for item in ordered)

        return vectors
