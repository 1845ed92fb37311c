import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class EmbeddingProviderType(StrEnum):
    OPENAI = "openai"
    BEDROCK = "bedrock"
    VERTEX = "vertex"


def _require_env(raw: dict[str, Any], key: str) -> str:
    env_name = raw.get(key, "")
    value = os.getenv(env_name, "") if env_name else ""
    if not value:
        raise ValueError(f"Missing env var: {env_name or key}")
    return value


@dataclass
class AbstractEmbeddingConfig(ABC):
    model: str
    dimensions: int

    @classmethod
    @abstractmethod
    def from_yaml(
        cls, raw: dict[str, Any], model: str, dimensions: int
    ) -> "AbstractEmbeddingConfig": ...


@dataclass
class OpenAIEmbeddingConfig(AbstractEmbeddingConfig):
    api_key: str
    api_url: str | None = None

    @classmethod
    def from_yaml(
        cls, raw: dict[str, Any], model: str, dimensions: int
    ) -> "OpenAIEmbeddingConfig":
        api_key = _require_env(raw, "api_key_env")
        api_url = os.getenv(raw.get("api_url_env", ""), "") or None
        return cls(model=model, dimensions=dimensions, api_key=api_key, api_url=api_url)


@dataclass
class BedrockEmbeddingConfig(AbstractEmbeddingConfig):
    region: str

    @classmethod
    def from_yaml(
        cls, raw: dict[str, Any], model: str, dimensions: int
    ) -> "BedrockEmbeddingConfig":
        return cls(model=model, dimensions=dimensions, region=_require_env(raw, "region_env"))


@dataclass
class VertexEmbeddingConfig(AbstractEmbeddingConfig):
    project_id: str
    location: str

    @classmethod
    def from_yaml(
        cls, raw: dict[str, Any], model: str, dimensions: int
    ) -> "VertexEmbeddingConfig":
        return cls(
            model=model,
            dimensions=dimensions,
            project_id=_require_env(raw, "project_id_env"),
            location=_require_env(raw, "location_env"),
        )


def parse_embedding_config(raw: dict[str, Any]) -> AbstractEmbeddingConfig:
    if "provider" not in raw:
        raise ValueError("Missing 'embedding.provider' in config")

    provider_key = raw["provider"]
    try:
        provider_type = EmbeddingProviderType(provider_key)
    except ValueError:
        raise ValueError(f"Unknown embedding provider: {provider_key}") from None

    model = raw.get("model", "")
    if not model:
        raise ValueError("Missing 'embedding.model' in config")

    dimensions = int(raw.get("dimensions", 768))
    if dimensions <= 0:
        raise ValueError("'embedding.dimensions' must be positive")

    provider_raw = raw.get(provider_key, {}) or {}

    match provider_type:
        case EmbeddingProviderType.OPENAI:
            return OpenAIEmbeddingConfig.from_yaml(provider_raw, model, dimensions)
        case EmbeddingProviderType.BEDROCK:
            return BedrockEmbeddingConfig.from_yaml(provider_raw, model, dimensions)
        case EmbeddingProviderType.VERTEX:
            return VertexEmbeddingConfig.from_yaml(provider_raw, model, dimensions)
