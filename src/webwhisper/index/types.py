from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ChunkInput:
    """A passage ready for storage: its text, vector, and free-form metadata."""

    content: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Source:
    url: str
    title: str
    description: str = ""
    crawled_at: datetime | None = None
    chunk_count: int = 0


@dataclass
class RetrievalResult:
    content: str
    url: str
    title: str
    similarity: float  # higher is more relevant, comparable across backends
    chunk_id: str = ""
    chunk_index: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    low_confidence: bool = False  # returned only because nothing cleared the threshold


@dataclass
class SearchFilters:
    url: str | None = None
    title: str | None = None

    def matches(self, url: str, title: str) -> bool:
        if self.url is not None and url != self.url:
            return False
        if self.title is not None and title != self.title:
            return False
        return True

    def is_empty(self) -> bool:
        return self.url is None and self.title is None


@dataclass
class IndexHealth:
    has_data: bool
    count: int
    available: bool = True  # false when the health query itself failed

    def as_dict(self) -> dict[str, Any]:
        return {"hasData": self.has_data, "count": self.count}
