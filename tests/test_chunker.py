import pytest

from webwhisper.ingestion.chunker import TextChunker

_ARTICLE = " ".join(
    f"Sentence number {i} talks about the research group and its published work."
    + ("\n\n" if i % 7 == 6 else "")
    for i in range(80)
)


class TestTextChunker:
    def test_empty_and_blank_text(self) -> None:
        chunker = TextChunker()
        assert chunker.split("") == []
        assert chunker.split("   \n\t ") == []

    def test_short_text_is_single_trimmed_chunk(self) -> None:
        chunker = TextChunker(chunk_size=100, overlap=20)
        assert chunker.split("  A short page about the lab.  ") == ["A short page about the lab."]

    def test_drops_chunks_below_min_length(self) -> None:
        chunker = TextChunker(chunk_size=100, overlap=20, min_length=10)
        assert chunker.split("tiny") == []

    def test_every_chunk_within_size(self) -> None:
        chunker = TextChunker(chunk_size=200, overlap=40)
        chunks = chunker.split(_ARTICLE)

        assert len(chunks) > 1
        assert all(len(c) <= 200 for c in chunks)

    def test_spans_cover_all_content(self) -> None:
        chunker = TextChunker(chunk_size=200, overlap=40)
        spans = chunker.split_spans(_ARTICLE)

        covered = [False] * len(_ARTICLE)
        for span in spans:
            assert _ARTICLE[span.start : span.end] == span.text
            for i in range(span.start, span.end):
                covered[i] = True

        missing = [i for i, ch in enumerate(_ARTICLE) if not ch.isspace() and not covered[i]]
        assert missing == []

    def test_consecutive_chunks_overlap(self) -> None:
        chunker = TextChunker(chunk_size=100, overlap=20)
        text = "word " * 600
        spans = chunker.split_spans(text)

        assert len(spans) > 1
        for previous, current in zip(spans, spans[1:], strict=False):
            assert current.start < previous.end
            assert previous.end - current.start <= 20

    def test_prefers_paragraph_boundaries(self) -> None:
        first = "The lab studies protein folding with cryo microscopy."
        second = "Its members publish in structural biology journals."
        chunker = TextChunker(chunk_size=100, overlap=20)

        assert chunker.split(f"{first}\n\n{second}") == [first, second]

    def test_hard_cut_when_no_boundary(self) -> None:
        text = "x" * 250
        chunker = TextChunker(chunk_size=100, overlap=20)
        spans = chunker.split_spans(text)

        assert [(s.start, s.end) for s in spans] == [(0, 100), (80, 180), (160, 250)]

    def test_hard_cut_keeps_overlap(self) -> None:
        spans = TextChunker().split_spans("x" * 2500)

        assert [len(s.text) for s in spans] == [1000, 1000, 900]
        for previous, current in zip(spans, spans[1:], strict=False):
            assert previous.end - current.start == 200

    def test_hard_cut_without_overlap(self) -> None:
        chunks = TextChunker(chunk_size=100, overlap=0).split("y" * 250)

        assert [len(c) for c in chunks] == [100, 100, 50]

    def test_deterministic(self) -> None:
        chunker = TextChunker(chunk_size=150, overlap=30)
        assert chunker.split(_ARTICLE) == chunker.split(_ARTICLE)

    @pytest.mark.parametrize(
        ("chunk_size", "overlap"),
        [(0, 0), (100, 100), (100, 150), (100, -1)],
    )
    def test_rejects_invalid_settings(self, chunk_size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=chunk_size, overlap=overlap)
