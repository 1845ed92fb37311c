from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol


class ResponseStatus(StrEnum):
    GREETING = "greeting"
    NO_CONTENT = "no_content"
    TOO_SHORT = "too_short"
    NO_MATCH = "no_match"
    ANSWERED = "answered"
    DEGRADED = "degraded"


class AnswerGenerator(Protocol):
    """Writes the answer text from retrieved passages; implemented outside this package."""

    def answer(self, question: str, passages: list[str]) -> str: ...


@dataclass
class Passage:
    content: str  # annotated with title and url for attribution
    text: str
    url: str
    title: str
    similarity: float
    chunk_id: str = ""
    low_confidence: bool = False


@dataclass
class SourceReference:
    url: str
    title: str
    similarity: float

    def as_dict(self) -> dict[str, Any]:
        return {"url": self.url, "title": self.title, "similarity": self.similarity}


@dataclass
class ChatResponse:
    answer: str
    status: ResponseStatus
    sources: list[SourceReference] = field(default_factory=list)
    passages: list[Passage] = field(default_factory=list)
    low_confidence: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [s.as_dict() for s in self.sources],
            "lowConfidence": self.low_confidence,
        }


@dataclass
class KnowledgeDocument:
    content: str
    similarity: float
    uuid: str

    def as_dict(self) -> dict[str, Any]:
        return {"content": self.content, "similarity": self.similarity, "uuid": self.uuid}
