import math
import re
from collections import deque
from dataclasses import dataclass

# Boundaries in priority order: paragraph break, line break, sentence end, whitespace.
# A piece always ends right after its boundary, so pieces tile the input exactly.
_BOUNDARIES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\n[ \t]*\n\s*"),
    re.compile(r"\n\s*"),
    re.compile(r"[.!?]+[\"')\]]*\s+"),
    re.compile(r"\s+"),
)


@dataclass(frozen=True)
class TextSpan:
    start: int
    end: int
    text: str


class TextChunker:
    """Splits text into overlapping, bounded passages.

    Each passage is at most ``chunk_size`` characters and starts with up to
    ``overlap`` characters carried over from the end of the previous one.
    Splits prefer the largest boundary that keeps a piece within
    ``chunk_size`` and only cut inside a word when nothing else fits.
    Passages shorter than ``min_length`` after trimming are dropped.
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200, min_length: int = 10) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError("overlap must be >= 0 and smaller than chunk_size")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._min_length = min_length

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def split(self, text: str) -> list[str]:
        return [span.text for span in self.split_spans(text)]

    def split_spans(self, text: str) -> list[TextSpan]:
        """Like :meth:`split` but keeps each passage's offsets into *text*."""
        if not text or not text.strip():
            return []

        pieces = self._pieces(text, 0, len(text), 0)
        spans: list[TextSpan] = []
        for start, end in self._merge(pieces):
            raw = text[start:end]
            stripped = raw.strip()
            if len(stripped) < self._min_length:
                continue
            lead = len(raw) - len(raw.lstrip())
            spans.append(TextSpan(start=start + lead, end=start + lead + len(stripped), text=stripped))
        return spans

    def _pieces(self, text: str, start: int, end: int, level: int) -> list[tuple[int, int]]:
        if end - start <= self._chunk_size:
            return [(start, end)]

        if level >= len(_BOUNDARIES):
            # Hard cut in steps that pack evenly into both chunk_size and overlap.
            step = math.gcd(self._chunk_size, self._overlap)
            return [(offset, min(offset + step, end)) for offset in range(start, end, step)]

        cuts = [m.end() for m in _BOUNDARIES[level].finditer(text, start, end) if m.end() < end]
        if not cuts:
            return self._pieces(text, start, end, level + 1)

        pieces: list[tuple[int, int]] = []
        previous = start
        for cut in [*cuts, end]:
            if cut <= previous:
                continue
            if cut - previous <= self._chunk_size:
                pieces.append((previous, cut))
            else:
                pieces.extend(self._pieces(text, previous, cut, level + 1))
            previous = cut
        return pieces

    def _merge(self, pieces: list[tuple[int, int]]) -> list[tuple[int, int]]:
        windows: list[tuple[int, int]] = []
        window: deque[tuple[int, int]] = deque()

        for piece in pieces:
            if window and piece[1] - window[0][0] > self._chunk_size:
                windows.append((window[0][0], window[-1][1]))
                while window and (
                    window[-1][1] - window[0][0] > self._overlap
                    or piece[1] - window[0][0] > self._chunk_size
                ):
                    window.popleft()
            window.append(piece)

        if window:
            windows.append((window[0][0], window[-1][1]))
        return windows
