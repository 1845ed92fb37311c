import random
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from webwhisper.config import RetrievalConfig
from webwhisper.embedding.provider import AbstractEmbeddingProvider
from webwhisper.errors import IndexUnavailable, ValidationError
from webwhisper.index.base import AbstractVectorIndex
from webwhisper.index.types import RetrievalResult
from webwhisper.query.messages import extract_latest_user_message
from webwhisper.query.normalizer import Query, QueryNormalizer, is_greeting
from webwhisper.retrieval.types import (
    AnswerGenerator,
    ChatResponse,
    KnowledgeDocument,
    Passage,
    ResponseStatus,
    SourceReference,
)
from webwhisper.util.concurrency import run_with_timeout

_logger = structlog.get_logger()

GREETING_RESPONSES = (
    "Hello! I'm here to help you learn about the website content that was crawled. "
    "What would you like to know?",
    "Hi there! I can answer questions about the website content. What would you like to ask?",
    "Hey! I'm ready to help you explore the crawled website content. "
    "What questions do you have?",
    "Hello! Feel free to ask me anything about the website content. "
    "How can I assist you today?",
)
NO_CONTENT_RESPONSE = (
    "I don't have any website content stored yet. Please crawl a website first."
)
TOO_SHORT_RESPONSE = "Could you tell me a little more about what you're looking for?"
NO_MATCH_RESPONSE = (
    "I don't have enough information about this topic from the crawled website content. "
    "Could you try asking about something else or provide more context?"
)
LOW_CONFIDENCE_RESPONSE = (
    "I couldn't look that up right now. Please try again in a moment."
)


def annotate(result: RetrievalResult) -> str:
    """Prefix a passage with its page title and append its url."""
    content = result.content
    if result.title:
        content = f"[From: {result.title}]\n{content}"
    if result.url and result.url not in content:
        content = f"{content}\n[Source: {result.url}]"
    return content


class RetrievalOrchestrator:
    """Answers one message: greet, check the index, normalize, embed, search, trim, annotate.

    Requests share nothing but the index and embedding client. Apart from a
    missing message, every failure ends in a well-formed response.
    """

    def __init__(
        self,
        embedding_provider: AbstractEmbeddingProvider,
        index: AbstractVectorIndex,
        config: RetrievalConfig,
        normalizer: QueryNormalizer | None = None,
        answer_generator: AnswerGenerator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._index = index
        self._config = config
        self._normalizer = normalizer or QueryNormalizer()
        self._answer_generator = answer_generator
        self._rng = rng or random.Random()

    def respond(
        self,
        message: str | None,
        history: Sequence[Mapping[str, Any]] | None = None,
    ) -> ChatResponse:
        """Answer *message*, or the newest user turn of *history* when no message is given."""
        if (not message or not message.strip()) and history:
            message = extract_latest_user_message(history)
        if not message or not message.strip():
            raise ValidationError("message is required")

        if is_greeting(message):
            _logger.info("greeting_detected")
            return ChatResponse(
                answer=self._rng.choice(GREETING_RESPONSES), status=ResponseStatus.GREETING
            )

        try:
            if not self._index_has_data():
                return ChatResponse(answer=NO_CONTENT_RESPONSE, status=ResponseStatus.NO_CONTENT)

            query = self._normalizer.normalize(message)
            if self._normalizer.reject(query.cleaned):
                return ChatResponse(answer=TOO_SHORT_RESPONSE, status=ResponseStatus.TOO_SHORT)

            results = self._retrieve(query)
        except Exception:
            _logger.exception("chat_retrieval_failed", query_preview=message[:80])
            return ChatResponse(
                answer=LOW_CONFIDENCE_RESPONSE, status=ResponseStatus.DEGRADED, low_confidence=True
            )

        if not results:
            return ChatResponse(
                answer=NO_MATCH_RESPONSE, status=ResponseStatus.NO_MATCH, low_confidence=True
            )

        passages = [
            Passage(
                content=annotate(r),
                text=r.content,
                url=r.url,
                title=r.title,
                similarity=r.similarity,
                chunk_id=r.chunk_id,
                low_confidence=r.low_confidence,
            )
            for r in results
        ]
        return ChatResponse(
            answer=self._answer(query.cleaned, passages),
            status=ResponseStatus.ANSWERED,
            sources=[SourceReference(p.url, p.title, p.similarity) for p in passages],
            passages=passages,
            low_confidence=all(p.low_confidence for p in passages),
        )

    def search_documents(self, message: str | None) -> list[KnowledgeDocument]:
        """Knowledge-base lookup for the voice front-end; returns [] rather than failing."""
        if not message or not message.strip():
            return []

        try:
            if not self._index_has_data():
                return []
            query = self._normalizer.normalize(message)
            if self._normalizer.reject(query.cleaned):
                _logger.info("query_too_short", query=query.cleaned)
                return []
            results = self._retrieve(query)
        except Exception:
            _logger.exception("document_search_failed", query_preview=message[:80])
            return []

        return [
            KnowledgeDocument(
                content=annotate(r),
                similarity=r.similarity,
                uuid=r.chunk_id or r.url,
            )
            for r in results
        ]

    def _index_has_data(self) -> bool:
        health = run_with_timeout(
            self._index.health_check, self._config.timeout, operation="health_check"
        )
        if not health.available:
            raise IndexUnavailable(f"{self._index.name} health check failed")
        if not health.has_data:
            _logger.info("index_empty")
        return health.has_data

    def _retrieve(self, query: Query) -> list[RetrievalResult]:
        top_k = self._config.name_top_k if query.has_name else self._config.top_k
        keep = self._config.name_top_documents if query.has_name else self._config.top_documents

        vector = run_with_timeout(
            lambda: self._embedding_provider.embed(query.embedding_text),
            self._config.timeout,
            operation="embed_query",
        )
        candidates = run_with_timeout(
            lambda: self._index.search(
                vector,
                top_k,
                self._config.similarity_threshold,
                fallback_count=self._config.fallback_count,
            ),
            self._config.timeout,
            operation="index_search",
        )

        ranked = sorted(candidates, key=lambda r: r.similarity, reverse=True)[:keep]
        _logger.info(
            "retrieval_complete",
            query_preview=query.cleaned[:80],
            search_text=query.search_text,
            has_name=query.has_name,
            candidates=len(candidates),
            returned=len(ranked),
        )
        return ranked

    def _answer(self, question: str, passages: Sequence[Passage]) -> str:
        contents = [p.content for p in passages]
        if self._answer_generator is None:
            return "\n\n".join(contents)
        try:
            return self._answer_generator.answer(question, contents)
        except Exception:
            _logger.error("answer_generation_failed", exc_info=True)
            return "\n\n".join(contents)
