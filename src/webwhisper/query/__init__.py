from webwhisper.query.messages import extract_latest_user_message
from webwhisper.query.normalizer import (
    DEFAULT_STEPS,
    NormalizationStep,
    Query,
    QueryFlags,
    QueryNormalizer,
    collapse_spelled_letters,
    collapse_whitespace,
    is_greeting,
)

__all__ = [
    "DEFAULT_STEPS",
    "NormalizationStep",
    "Query",
    "QueryFlags",
    "QueryNormalizer",
    "collapse_spelled_letters",
    "collapse_whitespace",
    "extract_latest_user_message",
    "is_greeting",
]
