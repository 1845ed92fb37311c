from webwhisper.index.base import AbstractVectorIndex, apply_threshold
from webwhisper.index.config import (
    AbstractIndexConfig,
    ChromaIndexConfig,
    IndexBackend,
    MemoryIndexConfig,
    PgVectorIndexConfig,
    QdrantIndexConfig,
    parse_index_config,
)
from webwhisper.index.types import ChunkInput, IndexHealth, RetrievalResult, SearchFilters, Source


def create_vector_index(config: AbstractIndexConfig, dimensions: int) -> AbstractVectorIndex:
    # Backend client libraries are imported only for the backend in use.
    match config:
        case PgVectorIndexConfig():
            from webwhisper.index.adapters.pgvector import PgVectorIndex

            return PgVectorIndex(
                database_url=config.database_url,
                dimensions=dimensions,
                table_prefix=config.table_prefix,
            )
        case MemoryIndexConfig():
            from webwhisper.index.adapters.memory import InMemoryVectorIndex

            return InMemoryVectorIndex(dimensions)
        case QdrantIndexConfig():
            from webwhisper.index.adapters.qdrant import QdrantVectorIndex

            return QdrantVectorIndex(
                dimensions=dimensions,
                collection=config.collection,
                url=config.url,
                location=config.location,
                api_key=config.api_key,
                distance=config.distance,
                hnsw_m=config.hnsw_m,
                hnsw_ef_construct=config.hnsw_ef_construct,
                search_ef=config.search_ef,
            )
        case ChromaIndexConfig():
            from webwhisper.index.adapters.chroma import ChromaVectorIndex

            return ChromaVectorIndex(
                dimensions=dimensions,
                collection=config.collection,
                mode=config.mode,
                host=config.host,
                port=config.port,
                ssl=config.ssl,
                path=config.path,
                space=config.space,
            )
        case _:
            raise ValueError(f"Unknown index config: {type(config).__name__}")


__all__ = [
    "AbstractIndexConfig",
    "AbstractVectorIndex",
    "ChromaIndexConfig",
    "ChunkInput",
    "IndexBackend",
    "IndexHealth",
    "MemoryIndexConfig",
    "PgVectorIndexConfig",
    "QdrantIndexConfig",
    "RetrievalResult",
    "SearchFilters",
    "Source",
    "apply_threshold",
    "create_vector_index",
    "parse_index_config",
]
