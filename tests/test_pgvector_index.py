import time
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

import webwhisper.util.db as db_module
from webwhisper.config import RetrievalConfig
from webwhisper.errors import IndexUnavailable
from webwhisper.index.adapters.pgvector import PgVectorIndex
from webwhisper.index.types import ChunkInput, SearchFilters
from webwhisper.retrieval.orchestrator import RetrievalOrchestrator
from webwhisper.retrieval.types import ResponseStatus

DIMENSIONS = 3


def _chunks(*contents: str) -> list[ChunkInput]:
    return [
        ChunkInput(content=c, embedding=[1.0, 0.0, 0.0], metadata={"chunk_index": i})
        for i, c in enumerate(contents)
    ]


def _row(content: str, distance: float, url: str = "https://a.example") -> MagicMock:
    row = MagicMock()
    row.id = "00000000-0000-0000-0000-000000000001"
    row.chunk_index = 0
    row.content = content
    row.metadata_ = {"content_type": "text/html"}
    row.url = url
    row.title = "A"
    row.distance = distance
    return row


def _patched_session(mock_session: MagicMock):
    patcher = patch("webwhisper.index.adapters.pgvector.get_session")
    mock_get_session = patcher.start()
    mock_get_session.return_value.__enter__ = MagicMock(return_value=mock_session)
    mock_get_session.return_value.__exit__ = MagicMock(return_value=False)
    return patcher


class TestPgVectorIndexStorage:
    """Write paths against SQLite; vector search needs a real pgvector server."""

    def setup_method(self) -> None:
        db_module.reset_engine()
        self.index = PgVectorIndex("sqlite:///:memory:", DIMENSIONS)
        self.index.initialize()

    def teardown_method(self) -> None:
        db_module.reset_engine()

    def test_upsert_and_health(self) -> None:
        assert self.index.health_check().count == 0

        stored = self.index.upsert("https://a.example", "A", "desc", _chunks("one", "two"))

        assert stored == 2
        assert self.index.health_check().as_dict() == {"hasData": True, "count": 2}

    def test_reupsert_replaces_chunks(self) -> None:
        self.index.upsert("https://a.example", "A", "", _chunks("one", "two", "three"))
        self.index.upsert("https://a.example", "A2", "", _chunks("only"))

        sources = self.index.list_sources()
        assert len(sources) == 1
        assert sources[0].title == "A2"
        assert sources[0].chunk_count == 1
        assert self.index.health_check().count == 1

    def test_list_sources_newest_first(self) -> None:
        self.index.upsert("https://a.example", "A", "", _chunks("one"))
        time.sleep(0.01)
        self.index.upsert("https://b.example", "", "", _chunks("two", "three"))

        sources = self.index.list_sources()

        assert [s.url for s in sources] == ["https://b.example", "https://a.example"]
        assert sources[0].title == "Untitled"
        assert sources[0].chunk_count == 2

    def test_delete_source(self) -> None:
        self.index.upsert("https://a.example", "A", "", _chunks("one", "two"))
        self.index.upsert("https://b.example", "B", "", _chunks("three"))

        assert self.index.delete_source("https://a.example") == 2
        assert self.index.delete_source("https://a.example") == 0
        assert [s.url for s in self.index.list_sources()] == ["https://b.example"]

    def test_empty_upsert_removes_source(self) -> None:
        self.index.upsert("https://a.example", "A", "", _chunks("one", "two"))

        stored = self.index.upsert("https://a.example", "A", "", [])

        assert stored == 0
        assert self.index.list_sources() == []
        assert self.index.health_check().count == 0

    def test_empty_upsert_of_unknown_source(self) -> None:
        assert self.index.upsert("https://new.example", "New", "", []) == 0
        assert self.index.list_sources() == []


class TestPgVectorIndexSearch:
    def setup_method(self) -> None:
        self.ensure_patcher = patch("webwhisper.index.adapters.pgvector.ensure_engine")
        self.ensure_patcher.start()
        self.index = PgVectorIndex("postgresql+psycopg://db/ww", DIMENSIONS)

    def teardown_method(self) -> None:
        patch.stopall()

    def test_distance_converted_to_similarity(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.return_value.all.return_value = [
            _row("close", 0.1),
            _row("far", 0.9),
        ]
        _patched_session(mock_session)

        results = self.index.search([1.0, 0.0, 0.0], top_k=5, similarity_threshold=0.5)

        assert [r.content for r in results] == ["close"]
        assert results[0].similarity == pytest.approx(0.9)
        assert results[0].metadata == {"content_type": "text/html"}

    def test_filters_added_to_query(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.return_value.all.return_value = []
        _patched_session(mock_session)

        self.index.search(
            [1.0, 0.0, 0.0], top_k=5, filters=SearchFilters(url="https://a.example")
        )

        stmt = mock_session.execute.call_args[0][0]
        assert "websites.url = " in str(stmt)

    def test_connection_failure_degrades_search(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("refused"))
        _patched_session(mock_session)

        assert self.index.search([1.0, 0.0, 0.0], top_k=5) == []
        assert self.index.health_check().as_dict() == {"hasData": False, "count": 0}

    def test_connection_failure_on_write_raises(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("refused"))
        _patched_session(mock_session)

        with pytest.raises(IndexUnavailable):
            self.index.upsert("https://a.example", "A", "", _chunks("one"))

    def test_missing_table_degrades_reads(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.side_effect = ProgrammingError(
            "SELECT", {}, Exception('relation "content_chunks" does not exist')
        )
        _patched_session(mock_session)

        assert self.index.search([1.0, 0.0, 0.0], top_k=5) == []
        health = self.index.health_check()
        assert not health.available
        assert not health.has_data

    def test_missing_table_on_write_raises(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.side_effect = ProgrammingError(
            "SELECT", {}, Exception('relation "websites" does not exist')
        )
        _patched_session(mock_session)

        with pytest.raises(IndexUnavailable, match="does not exist"):
            self.index.upsert("https://a.example", "A", "", _chunks("one"))

    def test_missing_table_degrades_chat(self) -> None:
        mock_session = MagicMock()
        mock_session.execute.side_effect = ProgrammingError(
            "SELECT", {}, Exception('relation "content_chunks" does not exist')
        )
        _patched_session(mock_session)
        embedding_provider = MagicMock()
        embedding_provider.embed.return_value = [1.0, 0.0, 0.0]
        orchestrator = RetrievalOrchestrator(
            embedding_provider=embedding_provider,
            index=self.index,
            config=RetrievalConfig(timeout=0),
        )

        response = orchestrator.respond("where is the research lab located in the city")

        assert response.status == ResponseStatus.DEGRADED
        assert response.low_confidence
        assert orchestrator.search_documents("where is the research lab") == []
        embedding_provider.embed.assert_not_called()
