from webwhisper.retrieval.orchestrator import RetrievalOrchestrator, annotate
from webwhisper.retrieval.types import (
    AnswerGenerator,
    ChatResponse,
    KnowledgeDocument,
    Passage,
    ResponseStatus,
    SourceReference,
)

__all__ = [
    "AnswerGenerator",
    "ChatResponse",
    "KnowledgeDocument",
    "Passage",
    "ResponseStatus",
    "RetrievalOrchestrator",
    "SourceReference",
    "annotate",
]
