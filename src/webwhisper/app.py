from dataclasses import dataclass

import structlog

from webwhisper.config import WebWhisperConfig, load_config
from webwhisper.embedding import create_embedding_provider
from webwhisper.embedding.provider import AbstractEmbeddingProvider
from webwhisper.index import create_vector_index
from webwhisper.index.base import AbstractVectorIndex
from webwhisper.ingestion import Ingestor, TextChunker
from webwhisper.retrieval import AnswerGenerator, RetrievalOrchestrator

_logger = structlog.get_logger()


@dataclass
class Components:
    config: WebWhisperConfig
    embedding_provider: AbstractEmbeddingProvider
    index: AbstractVectorIndex
    ingestor: Ingestor
    orchestrator: RetrievalOrchestrator


def build_components(
    config: WebWhisperConfig,
    answer_generator: AnswerGenerator | None = None,
    embedding_provider: AbstractEmbeddingProvider | None = None,
    index: AbstractVectorIndex | None = None,
) -> Components:
    embedding_provider = embedding_provider or create_embedding_provider(config.embedding)
    index = index or create_vector_index(config.index, config.dimensions)
    if index.dimensions != embedding_provider.dimensions:
        raise ValueError(
            f"Index expects {index.dimensions}-dimensional vectors "
            f"but the embedding model produces {embedding_provider.dimensions}"
        )

    chunker = TextChunker(
        chunk_size=config.chunking.chunk_size,
        overlap=config.chunking.overlap,
        min_length=config.chunking.min_length,
    )
    ingestor = Ingestor(
        chunker=chunker,
        embedding_provider=embedding_provider,
        index=index,
        timeout=config.ingestion.timeout,
    )
    orchestrator = RetrievalOrchestrator(
        embedding_provider=embedding_provider,
        index=index,
        config=config.retrieval,
        answer_generator=answer_generator,
    )
    _logger.info(
        "components_built",
        index=index.name,
        embedding_model=config.embedding.model,
        dimensions=config.dimensions,
    )
    return Components(
        config=config,
        embedding_provider=embedding_provider,
        index=index,
        ingestor=ingestor,
        orchestrator=orchestrator,
    )


_components: Components | None = None


def get_components() -> Components:
    """Process-wide components, built and initialized on first use."""
    global _components  # noqa: PLW0603
    if _components is None:
        components = build_components(load_config())
        components.index.initialize()
        _components = components
    return _components
