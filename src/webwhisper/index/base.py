import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from webwhisper.errors import DimensionMismatch, ValidationError
from webwhisper.index.types import ChunkInput, IndexHealth, RetrievalResult, SearchFilters, Source

_logger = structlog.get_logger()

FALLBACK_RESULT_COUNT = 3


def new_chunk_id() -> str:
    return str(uuid.uuid4())


def apply_threshold(
    candidates: Sequence[RetrievalResult],
    similarity_threshold: float,
    fallback_count: int = FALLBACK_RESULT_COUNT,
) -> list[RetrievalResult]:
    """Keep candidates at or above the threshold, best first.

    A threshold never empties a non-empty candidate list: when nothing
    clears it, the best ``fallback_count`` candidates come back flagged
    ``low_confidence``.
    """
    ranked = sorted(candidates, key=lambda r: r.similarity, reverse=True)
    passing = [r for r in ranked if r.similarity >= similarity_threshold]
    if passing or not ranked:
        return passing

    relaxed = ranked[: min(fallback_count, len(ranked))]
    for result in relaxed:
        result.low_confidence = True
    _logger.info(
        "threshold_relaxed",
        threshold=similarity_threshold,
        best=relaxed[0].similarity,
        returned=len(relaxed),
    )
    return relaxed


class AbstractVectorIndex(ABC):
    """Uniform storage and similarity search over chunk embeddings.

    Every backend reports similarity on the same higher-is-better scale.
    Write paths raise :class:`IndexUnavailable` when the backend cannot be
    reached; ``search`` and ``health_check`` log any backend failure and
    return an empty result instead, with ``IndexHealth.available`` unset.
    """

    name: str = "abstract"

    def __init__(self, dimensions: int) -> None:
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    # -- contract -------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> None: ...

    def upsert(
        self,
        source_url: str,
        title: str,
        description: str,
        chunks: Sequence[ChunkInput],
    ) -> int:
        """Replace every stored chunk of *source_url* with *chunks*."""
        if not source_url or not source_url.strip():
            raise ValidationError("source_url is required")
        for chunk in chunks:
            self.validate_vector(chunk.embedding)
        stored = self._replace_source(source_url, title or "Untitled", description or "", chunks)
        _logger.info("source_upserted", backend=self.name, url=source_url, chunks=stored)
        return stored

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 5,
        similarity_threshold: float = 0.5,
        filters: SearchFilters | None = None,
        fallback_count: int = FALLBACK_RESULT_COUNT,
    ) -> list[RetrievalResult]:
        self.validate_vector(query_vector)
        if top_k <= 0:
            return []
        try:
            candidates = self._query(list(query_vector), top_k, filters or SearchFilters())
        except Exception:
            # Read paths never raise: any backend failure reads as "no results".
            _logger.exception("search_degraded", backend=self.name)
            return []

        results = apply_threshold(candidates, similarity_threshold, fallback_count)
        _logger.debug(
            "index_search",
            backend=self.name,
            candidates=len(candidates),
            returned=len(results),
        )
        return results

    @abstractmethod
    def list_sources(self) -> list[Source]: ...

    def delete_source(self, url: str) -> int:
        if not url or not url.strip():
            raise ValidationError("url is required")
        deleted = self._delete(url)
        _logger.info("source_deleted", backend=self.name, url=url, chunks=deleted)
        return deleted

    def health_check(self) -> IndexHealth:
        try:
            return self._health()
        except Exception:
            _logger.exception("health_check_degraded", backend=self.name)
            return IndexHealth(has_data=False, count=0, available=False)

    def close(self) -> None:
        """Release the backend client, if any."""

    # -- backend hooks --------------------------------------------------------

    @abstractmethod
    def _replace_source(
        self,
        source_url: str,
        title: str,
        description: str,
        chunks: Sequence[ChunkInput],
    ) -> int: ...

    @abstractmethod
    def _query(
        self,
        query_vector: list[float],
        top_k: int,
        filters: SearchFilters,
    ) -> list[RetrievalResult]:
        """Return up to *top_k* nearest candidates with similarity already normalized."""

    @abstractmethod
    def _delete(self, url: str) -> int: ...

    @abstractmethod
    def _health(self) -> IndexHealth: ...

    # -- helpers --------------------------------------------------------------

    def validate_vector(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimensions:
            raise DimensionMismatch(self.dimensions, len(vector))


def group_sources(rows: Iterable[Mapping[str, Any]]) -> list[Source]:
    """Collapse per-chunk rows into sources, newest first.

    Rows carry ``url``, ``title``, ``description`` and ``crawled_at`` (epoch
    milliseconds). When rows for one url disagree, the most recent crawl's
    title and description win; ties go to the row seen last.
    """
    latest: dict[str, Mapping[str, Any]] = {}
    counts: dict[str, int] = {}
    for row in rows:
        url = str(row.get("url") or "")
        if not url:
            continue
        counts[url] = counts.get(url, 0) + 1
        current = latest.get(url)
        if current is None or _epoch_ms(row) >= _epoch_ms(current):
            latest[url] = row

    sources = [
        Source(
            url=url,
            title=str(row.get("title") or "Untitled"),
            description=str(row.get("description") or ""),
            crawled_at=datetime.fromtimestamp(_epoch_ms(row) / 1000, tz=UTC),
            chunk_count=counts[url],
        )
        for url, row in latest.items()
    ]
    sources.sort(key=lambda s: (s.crawled_at, s.url), reverse=True)
    return sources


def _epoch_ms(row: Mapping[str, Any]) -> int:
    return int(row.get("crawled_at") or 0)
