import json
from typing import Any

import boto3  # type: ignore[import-untyped]
import structlog

from webwhisper.embedding.config import BedrockEmbeddingConfig
from webwhisper.embedding.provider import AbstractEmbeddingProvider

_logger = structlog.get_logger()

_COHERE_MAX_BATCH = 96


class BedrockEmbeddingProvider(AbstractEmbeddingProvider):
    """Titan embeds one text per call; Cohere models accept batches."""

    config: BedrockEmbeddingConfig

    def __init__(self, config: BedrockEmbeddingConfig) -> None:
        super().__init__(config)
        self._client = boto3.client(
            "bedrock-runtime",
            region_name=config.region,
        )
        self._is_cohere = config.model.startswith("cohere.")

    def _embed_documents(self, texts: list[str]) -> list[list[float]]:
        if self._is_cohere:
            return self._embed_cohere(texts, input_type="search_document")
        return [self._embed_titan(text) for text in texts]

    def _embed_query(self, text: str) -> list[float]:
        if self._is_cohere:
            return self._embed_cohere([text], input_type="search_query")[0]
        return self._embed_titan(text)

    def _embed_titan(self, text: str) -> list[float]:
        body: dict[str, Any] = {"inputText": text, "dimensions": self.config.dimensions}
        response_body = self._invoke(body)
        return list(response_body["embedding"])

    def _embed_cohere(self, texts: list[str], input_type: str) -> list[list[float]]:
        vectors: list[list[float]] = []
        for offset in range(0, len(texts), _COHERE_MAX_BATCH):
            batch = texts[offset : offset + _COHERE_MAX_BATCH]
            _logger.debug("embedding_batch", batch_size=len(batch), offset=offset)
            response_body = self._invoke({"texts": batch, "input_type": input_type})
            vectors.extend(response_body["embeddings"])
        return vectors

    def _invoke(self, body: dict[str, Any]) -> dict[str, Any]:
        response = self._client.invoke_model(
            modelId=self.config.model,
            body=json.dumps(body),
        )
        result: dict[str, Any] = json.loads(response["body"].read())
        return result
