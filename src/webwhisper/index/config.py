from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any


class IndexBackend(StrEnum):
    PGVECTOR = "pgvector"
    MEMORY = "memory"
    QDRANT = "qdrant"
    CHROMA = "chroma"


@dataclass
class AbstractIndexConfig:
    backend: IndexBackend


@dataclass
class PgVectorIndexConfig(AbstractIndexConfig):
    database_url: str
    table_prefix: str = ""


@dataclass
class MemoryIndexConfig(AbstractIndexConfig):
    pass


@dataclass
class QdrantIndexConfig(AbstractIndexConfig):
    url: str | None = None
    location: str | None = None  # ":memory:" or a local path; overrides url
    api_key: str | None = None
    collection: str = "web_whisper"
    distance: str = "cosine"
    hnsw_m: int = 64
    hnsw_ef_construct: int = 200
    search_ef: int = 100


@dataclass
class ChromaIndexConfig(AbstractIndexConfig):
    mode: str = "http"
    host: str = "localhost"
    port: int = 8000
    ssl: bool = False
    path: Path | None = None
    collection: str = "web_whisper_content"
    space: str = "cosine"


def parse_index_config(raw: dict[str, Any], project_root: Path) -> AbstractIndexConfig:
    backend_key = raw.get("backend", "memory")
    try:
        backend = IndexBackend(backend_key)
    except ValueError:
        raise ValueError(f"Unknown index backend: {backend_key}") from None

    backend_raw: dict[str, Any] = raw.get(backend_key, {}) or {}

    match backend:
        case IndexBackend.PGVECTOR:
            database_url = backend_raw.get("database_url", "")
            if not database_url:
                raise ValueError("Missing 'index.pgvector.database_url' in config")
            return PgVectorIndexConfig(
                backend=backend,
                database_url=database_url,
                table_prefix=backend_raw.get("table_prefix", ""),
            )
        case IndexBackend.MEMORY:
            return MemoryIndexConfig(backend=backend)
        case IndexBackend.QDRANT:
            url = backend_raw.get("url") or None
            location = backend_raw.get("location") or None
            if not url and not location:
                raise ValueError("Missing 'index.qdrant.url' or 'index.qdrant.location' in config")
            return QdrantIndexConfig(
                backend=backend,
                url=url,
                location=location,
                api_key=backend_raw.get("api_key") or None,
                collection=backend_raw.get("collection", "web_whisper"),
                distance=str(backend_raw.get("distance", "cosine")).lower(),
                hnsw_m=int(backend_raw.get("hnsw_m", 64)),
                hnsw_ef_construct=int(backend_raw.get("hnsw_ef_construct", 200)),
                search_ef=int(backend_raw.get("search_ef", 100)),
            )
        case IndexBackend.CHROMA:
            path_raw = backend_raw.get("path")
            path: Path | None = None
            if path_raw:
                path = Path(path_raw)
                if not path.is_absolute():
                    path = project_root / path
            return ChromaIndexConfig(
                backend=backend,
                mode=backend_raw.get("mode", "http"),
                host=backend_raw.get("host", "localhost"),
                port=int(backend_raw.get("port", 8000)),
                ssl=bool(backend_raw.get("ssl", False)),
                path=path,
                collection=backend_raw.get("collection", "web_whisper_content"),
                space=backend_raw.get("space", "cosine"),
            )
