import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from webwhisper.__main__ import main
from webwhisper.app import build_components
from webwhisper.config import RetrievalConfig, WebWhisperConfig
from webwhisper.embedding.config import OpenAIEmbeddingConfig
from webwhisper.errors import IndexUnavailable
from webwhisper.index.adapters.memory import InMemoryVectorIndex
from webwhisper.index.config import IndexBackend, MemoryIndexConfig
from webwhisper.index.types import IndexHealth
from webwhisper.ingestion import CrawledPage
from webwhisper.retrieval.types import ResponseStatus

from conftest import DIMENSIONS, HashEmbeddingProvider


def _config(dimensions: int = DIMENSIONS) -> WebWhisperConfig:
    return WebWhisperConfig(
        embedding=OpenAIEmbeddingConfig(
            model="hash-embedding", dimensions=dimensions, api_key="test"
        ),
        index=MemoryIndexConfig(backend=IndexBackend.MEMORY),
        retrieval=RetrievalConfig(similarity_threshold=0.99, timeout=5),
    )


class TestBuildComponents:
    def test_builds_memory_pipeline(self, embedding_provider: HashEmbeddingProvider) -> None:
        components = build_components(_config(), embedding_provider=embedding_provider)

        assert isinstance(components.index, InMemoryVectorIndex)
        assert components.index.dimensions == DIMENSIONS

    def test_dimension_mismatch(self) -> None:
        with pytest.raises(ValueError, match="dimensional"):
            build_components(_config(dimensions=8), embedding_provider=HashEmbeddingProvider())

    def test_ingest_then_respond(self, embedding_provider: HashEmbeddingProvider) -> None:
        components = build_components(_config(), embedding_provider=embedding_provider)
        components.index.initialize()

        assert components.orchestrator.respond("who runs the lab").status == (
            ResponseStatus.NO_CONTENT
        )

        components.ingestor.ingest(
            CrawledPage(
                url="https://lab.example",
                title="Lab",
                content="The lab is run by Dr. Lee and studies protein folding.",
            )
        )
        response = components.orchestrator.respond("who runs the lab")

        assert response.status == ResponseStatus.ANSWERED
        # A random hash vector never clears 0.99, so the answer comes from the relaxed set.
        assert response.low_confidence
        assert response.sources[0].url == "https://lab.example"


class TestCli:
    def _run(self, argv: list[str], components: MagicMock) -> None:
        config = MagicMock()
        config.logging.json_output = False
        config.logging.level = "WARNING"
        with (
            patch("sys.argv", ["webwhisper", *argv]),
            patch("webwhisper.__main__.load_config", return_value=config),
            patch("webwhisper.__main__.get_components", return_value=components),
            patch("webwhisper.__main__.configure_logging"),
        ):
            main()

    def test_health(self, capsys) -> None:
        components = MagicMock()
        components.index.health_check.return_value = IndexHealth(has_data=True, count=4)

        self._run(["health"], components)

        assert json.loads(capsys.readouterr().out) == {"hasData": True, "count": 4}

    def test_ingest_reads_file(self, tmp_path: Path, capsys) -> None:
        page = tmp_path / "page.txt"
        page.write_text("Some crawled text about the lab.", encoding="utf-8")
        components = MagicMock()
        components.ingestor.ingest.return_value = MagicMock(url="https://lab.example", chunks_stored=1)

        self._run(["ingest", "https://lab.example", str(page), "--title", "Lab"], components)

        crawled = components.ingestor.ingest.call_args[0][0]
        assert crawled.title == "Lab"
        assert crawled.content == "Some crawled text about the lab."
        assert json.loads(capsys.readouterr().out)["chunksStored"] == 1

    def test_unknown_command(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            self._run(["frobnicate"], MagicMock())
        assert exc_info.value.code == 1

    def test_index_failure_exits_2(self) -> None:
        components = MagicMock()
        components.index.list_sources.side_effect = IndexUnavailable("down")

        with pytest.raises(SystemExit) as exc_info:
            self._run(["sources"], components)
        assert exc_info.value.code == 2
