from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from webwhisper.embedding.config import AbstractEmbeddingConfig, parse_embedding_config
from webwhisper.index.config import AbstractIndexConfig, parse_index_config
from webwhisper.util import PROJECT_ROOT, load_yaml_config

_CONFIG_PATH = PROJECT_ROOT / "config" / "webwhisper.yaml"


@dataclass
class ChunkingConfig:
    chunk_size: int = 1000
    overlap: int = 200
    min_length: int = 10


@dataclass
class RetrievalConfig:
    top_k: int = 10
    name_top_k: int = 15  # wider candidate pool for queries naming a person
    top_documents: int = 5
    name_top_documents: int = 7
    similarity_threshold: float = 0.2
    fallback_count: int = 3  # results kept when nothing clears the threshold
    timeout: float = 30.0  # seconds, per embedding or index call


@dataclass
class IngestionConfig:
    timeout: float = 120.0


@dataclass
class LoggingConfig:
    json_output: bool = True
    level: str = "INFO"


@dataclass
class WebWhisperConfig:
    embedding: AbstractEmbeddingConfig
    index: AbstractIndexConfig
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def dimensions(self) -> int:
        return self.embedding.dimensions


def load_config(config_path: Path | None = None) -> WebWhisperConfig:
    raw = load_yaml_config(config_path or _CONFIG_PATH)
    return parse_config(raw)


def parse_config(raw: dict[str, Any], project_root: Path = PROJECT_ROOT) -> WebWhisperConfig:
    if "embedding" not in raw:
        raise ValueError("Missing 'embedding' section in config")

    embedding = parse_embedding_config(raw.get("embedding") or {})
    index = parse_index_config(raw.get("index") or {}, project_root)

    chunking_raw = raw.get("chunking") or {}
    retrieval_raw = raw.get("retrieval") or {}
    ingestion_raw = raw.get("ingestion") or {}
    logging_raw = raw.get("logging") or {}

    chunking = ChunkingConfig(
        chunk_size=int(chunking_raw.get("chunk_size", 1000)),
        overlap=int(chunking_raw.get("overlap", 200)),
        min_length=int(chunking_raw.get("min_length", 10)),
    )
    if chunking.overlap >= chunking.chunk_size:
        raise ValueError("'chunking.overlap' must be smaller than 'chunking.chunk_size'")

    retrieval = RetrievalConfig(
        top_k=int(retrieval_raw.get("top_k", 10)),
        name_top_k=int(retrieval_raw.get("name_top_k", 15)),
        top_documents=int(retrieval_raw.get("top_documents", 5)),
        name_top_documents=int(retrieval_raw.get("name_top_documents", 7)),
        similarity_threshold=float(retrieval_raw.get("similarity_threshold", 0.2)),
        fallback_count=int(retrieval_raw.get("fallback_count", 3)),
        timeout=float(retrieval_raw.get("timeout", 30.0)),
    )
    if retrieval.fallback_count < 1:
        raise ValueError("'retrieval.fallback_count' must be at least 1")

    return WebWhisperConfig(
        embedding=embedding,
        index=index,
        chunking=chunking,
        retrieval=retrieval,
        ingestion=IngestionConfig(timeout=float(ingestion_raw.get("timeout", 120.0))),
        logging=LoggingConfig(
            json_output=bool(logging_raw.get("json", True)),
            level=str(logging_raw.get("level", "INFO")),
        ),
    )
