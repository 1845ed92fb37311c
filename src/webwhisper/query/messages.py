from collections.abc import Mapping, Sequence
from typing import Any

_USER_ROLES = ("user", "caller")
_CONTENT_KEYS = ("content", "text", "message")


def _content_of(message: Mapping[str, Any]) -> str:
    for key in _CONTENT_KEYS:
        value = message.get(key)
        if value:
            return str(value).strip()
    return ""


def extract_latest_user_message(messages: Sequence[Mapping[str, Any]] | None) -> str | None:
    """Return the newest user turn of a conversation transcript.

    Falls back to the newest turn with any content when no turn is
    attributed to the user or caller.
    """
    if not messages:
        return None

    for message in reversed(messages):
        if not message:
            continue
        role = str(message.get("role") or "").lower()
        content = _content_of(message)
        if role in _USER_ROLES and content:
            return content

    for message in reversed(messages):
        if message and (content := _content_of(message)):
            return content

    return None
