import json
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

import chromadb
import structlog

from webwhisper.errors import IndexUnavailable
from webwhisper.index.base import AbstractVectorIndex, group_sources, new_chunk_id
from webwhisper.index.metrics import Metric, to_similarity
from webwhisper.index.types import ChunkInput, IndexHealth, RetrievalResult, SearchFilters, Source

_logger = structlog.get_logger()

T = TypeVar("T")

_UPSERT_BATCH_SIZE = 5000  # ChromaDB rejects very large single writes

# Chroma reports distances for every space; map each onto cosine similarity.
_SPACE_METRICS: dict[str, Metric] = {
    "cosine": Metric.COSINE_DISTANCE,
    "l2": Metric.SQUARED_L2,
    "ip": Metric.INNER_PRODUCT_DISTANCE,
}

# Keys the index writes itself; caller metadata cannot override them.
_RESERVED_KEYS = ("url", "title", "description", "chunk_index", "crawled_at")


class ChromaVectorIndex(AbstractVectorIndex):
    """ChromaDB document-vector store, reached over HTTP or opened from disk."""

    name = "chroma"

    def __init__(
        self,
        dimensions: int,
        collection: str = "web_whisper_content",
        mode: str = "http",
        host: str = "localhost",
        port: int = 8000,
        ssl: bool = False,
        path: Path | None = None,
        space: str = "cosine",
    ) -> None:
        super().__init__(dimensions)
        if space not in _SPACE_METRICS:
            raise ValueError(f"Unsupported Chroma space: {space}")
        if mode not in ("http", "persistent", "ephemeral"):
            raise ValueError(f"Unsupported Chroma mode: {mode}")
        if mode == "persistent" and path is None:
            raise ValueError("Chroma persistent mode requires a path")
        self._collection_name = collection
        self._mode = mode
        self._host = host
        self._port = port
        self._ssl = ssl
        self._path = path
        self._space = space
        self._collection: Any = None

    def initialize(self) -> None:
        self._get_collection()
        _logger.info(
            "chroma_index_initialized",
            mode=self._mode,
            collection=self._collection_name,
            space=self._space,
        )

    def _replace_source(
        self,
        source_url: str,
        title: str,
        description: str,
        chunks: Sequence[ChunkInput],
    ) -> int:
        collection = self._get_collection()
        crawled_at = int(time.time() * 1000)

        ids = [new_chunk_id() for _ in chunks]
        documents = [chunk.content for chunk in chunks]
        embeddings = [list(chunk.embedding) for chunk in chunks]
        metadatas = [
            {
                **_flatten(chunk.metadata),
                "url": source_url,
                "title": title,
                "description": description,
                "chunk_index": i,
                "crawled_at": crawled_at,
            }
            for i, chunk in enumerate(chunks)
        ]

        self._call(lambda: collection.delete(where={"url": source_url}))
        for offset in range(0, len(ids), _UPSERT_BATCH_SIZE):
            end = offset + _UPSERT_BATCH_SIZE
            self._call(
                lambda: collection.add(
                    ids=ids[offset:end],
                    embeddings=embeddings[offset:end],
                    documents=documents[offset:end],
                    metadatas=metadatas[offset:end],
                )
            )
        return len(ids)

    def _query(
        self,
        query_vector: list[float],
        top_k: int,
        filters: SearchFilters,
    ) -> list[RetrievalResult]:
        collection = self._get_collection()
        where = _where(filters)
        results = self._call(
            lambda: collection.query(
                query_embeddings=[query_vector],
                n_results=top_k,
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        )

        ids = (results.get("ids") or [[]])[0]
        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]
        metric = _SPACE_METRICS[self._space]

        matches: list[RetrievalResult] = []
        for i, chunk_id in enumerate(ids):
            metadata = dict(metadatas[i] or {}) if i < len(metadatas) else {}
            matches.append(
                RetrievalResult(
                    content=documents[i] if i < len(documents) else "",
                    url=str(metadata.get("url", "")),
                    title=str(metadata.get("title", "")),
                    similarity=to_similarity(metric, distances[i] if i < len(distances) else 2.0),
                    chunk_id=str(chunk_id),
                    chunk_index=int(metadata.get("chunk_index", 0)),
                    metadata={k: v for k, v in metadata.items() if k not in _RESERVED_KEYS},
                )
            )
        return matches

    def list_sources(self) -> list[Source]:
        collection = self._get_collection()
        results = self._call(lambda: collection.get(include=["metadatas"]))
        return group_sources(m for m in (results.get("metadatas") or []) if m)

    def _delete(self, url: str) -> int:
        collection = self._get_collection()
        existing = self._call(lambda: collection.get(where={"url": url}, include=[]))
        ids = list(existing.get("ids") or [])
        if ids:
            self._call(lambda: collection.delete(ids=ids))
        return len(ids)

    def _health(self) -> IndexHealth:
        collection = self._get_collection()
        count = int(self._call(collection.count))
        return IndexHealth(has_data=count > 0, count=count)

    def _get_collection(self) -> Any:
        if self._collection is None:
            client = self._call(self._build_client)
            self._collection = self._call(
                lambda: client.get_or_create_collection(
                    name=self._collection_name,
                    metadata={"hnsw:space": self._space},
                    embedding_function=None,
                )
            )
        return self._collection

    def _build_client(self) -> Any:
        match self._mode:
            case "http":
                return chromadb.HttpClient(host=self._host, port=self._port, ssl=self._ssl)
            case "persistent":
                assert self._path is not None
                self._path.mkdir(parents=True, exist_ok=True)
                return chromadb.PersistentClient(path=str(self._path))
            case _:
                return chromadb.EphemeralClient()

    def _call(self, operation: Callable[[], T]) -> T:
        # chromadb surfaces transport failures as several unrelated exception types
        try:
            return operation()
        except Exception as exc:
            raise IndexUnavailable(f"chroma: {exc}") from exc


def _where(filters: SearchFilters) -> dict[str, Any] | None:
    clauses: list[dict[str, Any]] = []
    if filters.url is not None:
        clauses.append({"url": filters.url})
    if filters.title is not None:
        clauses.append({"title": filters.title})
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _flatten(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    """Chroma metadata values must be scalars; anything else is stored as JSON."""
    flat: dict[str, str | int | float | bool] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, str | int | float | bool):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, default=str)
    return flat
