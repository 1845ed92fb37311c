import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import structlog
from qdrant_client import QdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from webwhisper.errors import IndexUnavailable
from webwhisper.index.base import AbstractVectorIndex, group_sources, new_chunk_id
from webwhisper.index.metrics import Metric, to_similarity
from webwhisper.index.types import ChunkInput, IndexHealth, RetrievalResult, SearchFilters, Source

_logger = structlog.get_logger()

T = TypeVar("T")

_UPSERT_BATCH_SIZE = 100
_SCROLL_PAGE_SIZE = 256
_SOURCE_FIELDS = ["url", "title", "description", "crawled_at"]

# Qdrant distance -> how its query score maps onto cosine similarity
_DISTANCES: dict[str, tuple[models.Distance, Metric]] = {
    "cosine": (models.Distance.COSINE, Metric.COSINE),
    "euclid": (models.Distance.EUCLID, Metric.L2),
    "dot": (models.Distance.DOT, Metric.INNER_PRODUCT),
}


class QdrantVectorIndex(AbstractVectorIndex):
    """Approximate nearest-neighbour search on a Qdrant collection (HNSW).

    One point per chunk; the point payload repeats its source's url, title
    and description, and sources are derived by grouping payloads on url.
    ``location=":memory:"`` runs Qdrant in-process.
    """

    name = "qdrant"

    def __init__(
        self,
        dimensions: int,
        collection: str = "web_whisper",
        url: str | None = None,
        location: str | None = None,
        api_key: str | None = None,
        distance: str = "cosine",
        hnsw_m: int = 64,
        hnsw_ef_construct: int = 200,
        search_ef: int = 100,
    ) -> None:
        super().__init__(dimensions)
        if distance not in _DISTANCES:
            raise ValueError(f"Unsupported Qdrant distance: {distance}")
        if not url and not location:
            raise ValueError("Qdrant needs either a url or a location")
        self._collection = collection
        self._url = url
        self._location = location
        self._api_key = api_key
        self._distance, self._metric = _DISTANCES[distance]
        self._hnsw = models.HnswConfigDiff(m=hnsw_m, ef_construct=hnsw_ef_construct)
        self._search_ef = search_ef
        self._client: QdrantClient | None = None

    # -- lifecycle ------------------------------------------------------------

    def initialize(self) -> None:
        client = self._get_client()
        if not self._call(lambda: client.collection_exists(self._collection)):
            _logger.info("qdrant_collection_creating", collection=self._collection)
            self._call(
                lambda: client.create_collection(
                    collection_name=self._collection,
                    vectors_config=models.VectorParams(
                        size=self.dimensions, distance=self._distance
                    ),
                    hnsw_config=self._hnsw,
                )
            )
            for field in ("url", "title"):
                self._call(
                    lambda: client.create_payload_index(
                        collection_name=self._collection,
                        field_name=field,
                        field_schema=models.PayloadSchemaType.KEYWORD,
                    )
                )
        _logger.info(
            "qdrant_index_initialized",
            collection=self._collection,
            distance=self._distance.value,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # -- writes ---------------------------------------------------------------

    def _replace_source(
        self,
        source_url: str,
        title: str,
        description: str,
        chunks: Sequence[ChunkInput],
    ) -> int:
        client = self._get_client()
        crawled_at = int(time.time() * 1000)
        points = [
            models.PointStruct(
                id=new_chunk_id(),
                vector=list(chunk.embedding),
                payload={
                    "url": source_url,
                    "title": title,
                    "description": description,
                    "content": chunk.content,
                    "chunk_index": i,
                    "crawled_at": crawled_at,
                    "metadata": dict(chunk.metadata),
                },
            )
            for i, chunk in enumerate(chunks)
        ]

        self._call(
            lambda: client.delete(
                collection_name=self._collection,
                points_selector=models.FilterSelector(filter=_url_filter(source_url)),
                wait=True,
            )
        )
        for offset in range(0, len(points), _UPSERT_BATCH_SIZE):
            batch = points[offset : offset + _UPSERT_BATCH_SIZE]
            self._call(
                lambda: client.upsert(collection_name=self._collection, points=batch, wait=True)
            )
            _logger.debug("qdrant_batch_upserted", url=source_url, upserted=offset + len(batch))
        return len(points)

    def _delete(self, url: str) -> int:
        client = self._get_client()
        selector = _url_filter(url)
        existing = self._call(
            lambda: client.count(self._collection, count_filter=selector, exact=True)
        ).count
        if existing:
            self._call(
                lambda: client.delete(
                    collection_name=self._collection,
                    points_selector=models.FilterSelector(filter=selector),
                    wait=True,
                )
            )
        return int(existing)

    # -- reads ----------------------------------------------------------------

    def _query(
        self,
        query_vector: list[float],
        top_k: int,
        filters: SearchFilters,
    ) -> list[RetrievalResult]:
        client = self._get_client()
        response = self._call(
            lambda: client.query_points(
                collection_name=self._collection,
                query=query_vector,
                limit=top_k,
                query_filter=_search_filter(filters),
                search_params=models.SearchParams(hnsw_ef=max(self._search_ef, top_k)),
                with_payload=True,
            )
        )
        results: list[RetrievalResult] = []
        for point in response.points:
            payload: dict[str, Any] = point.payload or {}
            results.append(
                RetrievalResult(
                    content=str(payload.get("content", "")),
                    url=str(payload.get("url", "")),
                    title=str(payload.get("title", "")),
                    similarity=to_similarity(self._metric, point.score),
                    chunk_id=str(point.id),
                    chunk_index=int(payload.get("chunk_index", 0)),
                    metadata=dict(payload.get("metadata") or {}),
                )
            )
        return results

    def list_sources(self) -> list[Source]:
        client = self._get_client()
        payloads: list[dict[str, Any]] = []
        offset: Any = None
        while True:
            points, offset = self._call(
                lambda: client.scroll(
                    collection_name=self._collection,
                    limit=_SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=_SOURCE_FIELDS,
                    with_vectors=False,
                )
            )
            payloads.extend(p.payload or {} for p in points)
            if offset is None:
                break
        return group_sources(payloads)

    def _health(self) -> IndexHealth:
        client = self._get_client()
        count = self._call(lambda: client.count(self._collection, exact=True)).count
        return IndexHealth(has_data=count > 0, count=int(count))

    # -- plumbing -------------------------------------------------------------

    def _get_client(self) -> QdrantClient:
        if self._client is None:
            if self._location:
                self._client = QdrantClient(location=self._location)
            else:
                self._client = QdrantClient(url=self._url, api_key=self._api_key)
        return self._client

    def _call(self, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except (UnexpectedResponse, ResponseHandlingException, ConnectionError) as exc:
            raise IndexUnavailable(f"qdrant: {exc}") from exc


def _url_filter(url: str) -> models.Filter:
    return models.Filter(
        must=[models.FieldCondition(key="url", match=models.MatchValue(value=url))]
    )


def _search_filter(filters: SearchFilters) -> models.Filter | None:
    conditions: list[models.Condition] = []
    if filters.url is not None:
        conditions.append(models.FieldCondition(key="url", match=models.MatchValue(value=filters.url)))
    if filters.title is not None:
        conditions.append(
            models.FieldCondition(key="title", match=models.MatchValue(value=filters.title))
        )
    return models.Filter(must=conditions) if conditions else None
