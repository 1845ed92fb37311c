import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import structlog

_logger = structlog.get_logger()

NormalizationStep = Callable[[str], str]

_WHITESPACE = re.compile(r"\s+")
_LETTER = r"[^\W\d_]"
# Three or more one-letter tokens separated by spaces or commas: "a x c e n d", "a, x, c".
_SPELLED_RUN = re.compile(rf"(?<!\w){_LETTER}(?:(?:\s*,\s*|\s+){_LETTER}(?!\w)){{2,}}")
_NAME = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b")
_CAPITALIZED = re.compile(r"\b[A-Z][a-z]+\b")
_WORD = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")

SHORT_QUERY_TOKENS = 5
MAX_KEY_TERMS = 10
MIN_QUERY_LENGTH = 2

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "be",
        "been", "being", "have", "has", "had", "do", "does", "did", "will",
        "would", "should", "could", "may", "might", "must", "can", "this",
        "that", "these", "those", "i", "you", "he", "she", "it", "we", "they",
        "what", "where", "when", "why", "how", "tell", "me", "about", "am",
        "not", "no", "yes", "yeah", "um", "uh",
    }
)  # fmt: skip

GREETINGS = (
    "hi", "hello", "hey", "greetings", "good morning", "good afternoon",
    "good evening", "howdy", "what's up", "sup", "yo", "hola", "namaste",
    "how are you", "how do you do", "nice to meet you",
)  # fmt: skip

# Words that may accompany a greeting without turning it into a question.
_GREETING_FILLER = frozenset(
    {"there", "again", "everyone", "all", "folks", "guys", "friend", "buddy",
     "assistant", "bot", "doing", "today", "and", "so", "oh", "well"}
)  # fmt: skip

_GREETING_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(g) for g in sorted(GREETINGS, key=len, reverse=True)) + r")\b"
)


@dataclass
class QueryFlags:
    is_greeting: bool
    has_name: bool
    is_short: bool


@dataclass
class Query:
    raw: str
    cleaned: str
    search_text: str | None
    is_greeting: bool
    has_name: bool
    is_short: bool

    @property
    def embedding_text(self) -> str:
        """Text to embed: the key-term condensation when there is one."""
        return self.search_text or self.cleaned


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def collapse_spelled_letters(text: str) -> str:
    """Join letter-by-letter transcriptions ("a x c e n d") into one lowercase word.

    Runs of fewer than three letters are left alone.
    """
    return _SPELLED_RUN.sub(lambda m: "".join(re.findall(_LETTER, m.group(0))).lower(), text)


DEFAULT_STEPS: tuple[NormalizationStep, ...] = (collapse_whitespace, collapse_spelled_letters)


class QueryNormalizer:
    """Repairs transcription noise in a query and decides what to search with."""

    def __init__(self, steps: Sequence[NormalizationStep] = DEFAULT_STEPS) -> None:
        self._steps = tuple(steps)

    def clean_transcription(self, text: str) -> str:
        cleaned = text or ""
        for step in self._steps:
            cleaned = step(cleaned)
        return collapse_whitespace(cleaned)

    def classify(self, text: str) -> QueryFlags:
        tokens = text.split()
        return QueryFlags(
            is_greeting=is_greeting(text),
            has_name=bool(_NAME.search(text)),
            is_short=len(tokens) <= SHORT_QUERY_TOKENS,
        )

    def extract_key_terms(self, text: str) -> str:
        """Condense a long question into at most ten distinctive terms.

        Capitalized words come first, in the order they appear, followed by
        the longest remaining non-stop-words.
        """
        seen: set[str] = set()
        names: list[str] = []
        for match in _CAPITALIZED.finditer(text):
            term = match.group(0).lower()
            if term not in STOP_WORDS and term not in seen:
                seen.add(term)
                names.append(term)

        others: list[str] = []
        for term in _WORD.findall(text.lower()):
            if len(term) <= 2 or term in STOP_WORDS or term in seen:
                continue
            seen.add(term)
            others.append(term)
        others.sort(key=len, reverse=True)

        return " ".join([*names, *others][:MAX_KEY_TERMS])

    def reject(self, text: str) -> bool:
        return len((text or "").strip()) < MIN_QUERY_LENGTH

    def normalize(self, raw: str) -> Query:
        cleaned = self.clean_transcription(raw)
        flags = self.classify(cleaned)

        search_text: str | None = None
        if not (flags.is_short or flags.has_name or flags.is_greeting):
            search_text = self.extract_key_terms(cleaned) or None

        _logger.debug(
            "query_normalized",
            query_preview=cleaned[:80],
            search_text=search_text,
            has_name=flags.has_name,
            is_short=flags.is_short,
            is_greeting=flags.is_greeting,
        )
        return Query(
            raw=raw,
            cleaned=cleaned,
            search_text=search_text,
            is_greeting=flags.is_greeting,
            has_name=flags.has_name,
            is_short=flags.is_short,
        )


def is_greeting(text: str) -> bool:
    """True when the message is only a greeting, possibly with filler words."""
    normalized = re.sub(r"[^\w\s']", " ", text.lower().replace("’", "'"))
    normalized = collapse_whitespace(normalized)
    if not normalized:
        return False

    remainder, matched = _GREETING_PATTERN.subn(" ", normalized)
    if not matched:
        return False
    return all(word in _GREETING_FILLER for word in remainder.split())
