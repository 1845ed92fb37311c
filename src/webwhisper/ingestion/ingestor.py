from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from webwhisper.embedding.provider import AbstractEmbeddingProvider
from webwhisper.errors import (
    IndexUnavailable,
    OperationTimeout,
    PartialIngestionFailure,
    ValidationError,
)
from webwhisper.index.base import AbstractVectorIndex
from webwhisper.index.types import ChunkInput
from webwhisper.ingestion.chunker import TextChunker
from webwhisper.util.concurrency import KeyedLock, run_with_timeout

_logger = structlog.get_logger()


@dataclass
class CrawledPage:
    """Crawler output for one url."""

    url: str
    content: str
    title: str = ""
    description: str = ""
    content_type: str = "text/html"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class IngestionResult:
    url: str
    chunks_stored: int
    skipped: bool = False


class Ingestor:
    """Chunks a crawled page, embeds the chunks, and replaces the page's index entry.

    Writes for the same url are serialized; a failure after embedding is
    reported as :class:`PartialIngestionFailure` and the page should be
    ingested again from scratch.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_provider: AbstractEmbeddingProvider,
        index: AbstractVectorIndex,
        timeout: float | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._index = index
        self._timeout = timeout
        self._locks = locks or KeyedLock()

    def ingest(self, page: CrawledPage) -> IngestionResult:
        url = (page.url or "").strip()
        if not url:
            raise ValidationError("url is required")

        texts = self._chunker.split(page.content or "")
        if not texts:
            _logger.warning("no_chunks_produced", url=url)
            return IngestionResult(url=url, chunks_stored=0, skipped=True)

        _logger.info("ingesting_source", url=url, chunks=len(texts))
        embeddings = run_with_timeout(
            lambda: self._embedding_provider.embed_batch(texts),
            self._timeout,
            operation="embed_batch",
        )

        processed_at = datetime.now(UTC).isoformat()
        chunks = [
            ChunkInput(
                content=text,
                embedding=embedding,
                metadata={
                    **page.metadata,
                    "source_url": url,
                    "content_type": page.content_type,
                    "chunk_index": i,
                    "total_chunks": len(texts),
                    "chunk_length": len(text),
                    "processed_at": processed_at,
                },
            )
            for i, (text, embedding) in enumerate(zip(texts, embeddings, strict=True))
        ]

        def _store() -> int:
            with self._locks.hold(url):
                return self._index.upsert(url, page.title, page.description, chunks)

        try:
            stored = run_with_timeout(_store, self._timeout, operation="index_upsert")
        except (IndexUnavailable, OperationTimeout) as exc:
            _logger.error("ingestion_storage_failed", url=url, error=str(exc))
            raise PartialIngestionFailure(url, stage="storage", cause=exc) from exc

        _logger.info("ingestion_complete", url=url, chunks=stored)
        return IngestionResult(url=url, chunks_stored=stored)

    def delete(self, url: str) -> int:
        with self._locks.hold(url):
            return self._index.delete_source(url)
