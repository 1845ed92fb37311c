import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import numpy as np
import structlog

from webwhisper.index.base import AbstractVectorIndex, new_chunk_id
from webwhisper.index.types import ChunkInput, IndexHealth, RetrievalResult, SearchFilters, Source

_logger = structlog.get_logger()


@dataclass
class _StoredChunk:
    chunk_id: str
    chunk_index: int
    content: str
    metadata: dict[str, Any]


@dataclass
class _StoredSource:
    url: str
    title: str
    description: str
    crawled_at: datetime
    chunks: list[_StoredChunk] = field(default_factory=list)
    vectors: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.float32))


class InMemoryVectorIndex(AbstractVectorIndex):
    """Brute-force cosine scan over an in-process store.

    A source's chunks and vectors are swapped in as one object under the
    lock, so readers see either the old set or the new one.
    """

    name = "memory"

    def __init__(self, dimensions: int) -> None:
        super().__init__(dimensions)
        self._lock = threading.RLock()
        self._sources: dict[str, _StoredSource] = {}

    def initialize(self) -> None:
        _logger.debug("memory_index_ready", dimensions=self.dimensions)

    def _replace_source(
        self,
        source_url: str,
        title: str,
        description: str,
        chunks: Sequence[ChunkInput],
    ) -> int:
        record = _StoredSource(
            url=source_url,
            title=title,
            description=description,
            crawled_at=datetime.now(UTC),
            chunks=[
                _StoredChunk(
                    chunk_id=new_chunk_id(),
                    chunk_index=i,
                    content=chunk.content,
                    metadata=dict(chunk.metadata),
                )
                for i, chunk in enumerate(chunks)
            ],
            vectors=_normalize_rows(
                np.asarray([c.embedding for c in chunks], dtype=np.float32).reshape(
                    len(chunks), self.dimensions
                )
            ),
        )
        with self._lock:
            if chunks:
                self._sources[source_url] = record
            else:
                self._sources.pop(source_url, None)
        return len(chunks)

    def _query(
        self,
        query_vector: list[float],
        top_k: int,
        filters: SearchFilters,
    ) -> list[RetrievalResult]:
        query = np.asarray(query_vector, dtype=np.float32)
        query_norm = float(np.linalg.norm(query))
        if query_norm > 0:
            query = query / query_norm

        with self._lock:
            sources = [s for s in self._sources.values() if filters.matches(s.url, s.title)]

        scored: list[tuple[float, _StoredSource, _StoredChunk]] = []
        for source in sources:
            similarities = source.vectors @ query
            scored.extend(
                (float(score), source, chunk)
                for score, chunk in zip(similarities, source.chunks, strict=True)
            )

        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            RetrievalResult(
                content=chunk.content,
                url=source.url,
                title=source.title,
                similarity=score,
                chunk_id=chunk.chunk_id,
                chunk_index=chunk.chunk_index,
                metadata=dict(chunk.metadata),
            )
            for score, source, chunk in scored[:top_k]
        ]

    def list_sources(self) -> list[Source]:
        with self._lock:
            records = list(self._sources.values())
        return [
            Source(
                url=r.url,
                title=r.title,
                description=r.description,
                crawled_at=r.crawled_at,
                chunk_count=len(r.chunks),
            )
            for r in sorted(records, key=lambda r: r.crawled_at, reverse=True)
        ]

    def _delete(self, url: str) -> int:
        with self._lock:
            record = self._sources.pop(url, None)
        return len(record.chunks) if record else 0

    def _health(self) -> IndexHealth:
        with self._lock:
            count = sum(len(r.chunks) for r in self._sources.values())
        return IndexHealth(has_data=count > 0, count=count)


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms
