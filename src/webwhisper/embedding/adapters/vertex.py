import structlog
import vertexai
from vertexai.language_models import TextEmbeddingInput, TextEmbeddingModel

from webwhisper.embedding.config import VertexEmbeddingConfig
from webwhisper.embedding.provider import AbstractEmbeddingProvider

_logger = structlog.get_logger()

_MAX_BATCH_SIZE = 250  # Vertex AI embedding batch limit


class VertexEmbeddingProvider(AbstractEmbeddingProvider):
    """Gemini / text-embedding-00x models through Vertex AI."""

    config: VertexEmbeddingConfig

    def __init__(self, config: VertexEmbeddingConfig) -> None:
        super().__init__(config)
        vertexai.init(
            project=config.project_id,
            location=config.location,
        )
        self._model = TextEmbeddingModel.from_pretrained(config.model)

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        return self._embed(texts, task_type="RETRIEVAL_DOCUMENT")

    def _embed_query(self, text: str) -> list[float]:
        return self._embed([text], task_type="RETRIEVAL_QUERY")[0]

    def _embed(self, texts: list[str], task_type: str) -> list[list[float]]:
        vectors: list[list[float]] = []

        for offset in range(0, len(texts), _MAX_BATCH_SIZE):
            batch = texts[offset : offset + _MAX_BATCH_SIZE]
            _logger.debug("embedding_batch", batch_size=len(batch), offset=offset, task=task_type)

            inputs: list[str | TextEmbeddingInput] = [
                TextEmbeddingInput(text=t, task_type=task_type) for t in batch
            ]
            embeddings = self._model.get_embeddings(
                inputs, output_dimensionality=self.config.dimensions
            )
            vectors.extend(list(e.values) for e in embeddings)

        return vectors
