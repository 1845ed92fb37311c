from webwhisper.embedding.config import (
    AbstractEmbeddingConfig,
    BedrockEmbeddingConfig,
    EmbeddingProviderType,
    OpenAIEmbeddingConfig,
    VertexEmbeddingConfig,
    parse_embedding_config,
)
from webwhisper.embedding.provider import AbstractEmbeddingProvider


def create_embedding_provider(config: AbstractEmbeddingConfig) -> AbstractEmbeddingProvider:
    # SDK imports stay local so a deployment only needs its own provider's package.
    match config:
        case OpenAIEmbeddingConfig():
            from webwhisper.embedding.adapters.openai import OpenAIEmbeddingProvider

            return OpenAIEmbeddingProvider(config)
        case BedrockEmbeddingConfig():
            from webwhisper.embedding.adapters.bedrock import BedrockEmbeddingProvider

            return BedrockEmbeddingProvider(config)
        case VertexEmbeddingConfig():
            from webwhisper.embedding.adapters.vertex import VertexEmbeddingProvider

            return VertexEmbeddingProvider(config)
        case _:
            raise ValueError(f"Unknown embedding config: {type(config).__name__}")


__all__ = [
    "AbstractEmbeddingConfig",
    "AbstractEmbeddingProvider",
    "BedrockEmbeddingConfig",
    "EmbeddingProviderType",
    "OpenAIEmbeddingConfig",
    "VertexEmbeddingConfig",
    "create_embedding_provider",
    "parse_embedding_config",
]
