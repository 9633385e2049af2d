"""Collapse heterogeneous provider reply payloads into one trimmed string."""

from collections.abc import Mapping, Sequence
from typing import Any

# A reply is either plain text or a sequence of typed content fragments
# (dicts from raw JSON, or SDK block objects with a ``text`` attribute).
RawReply = str | Sequence[Any]


def _fragment_text(fragment: Any) -> str:
    if isinstance(fragment, Mapping):
        text = fragment.get("text")
    else:
        text = getattr(fragment, "text", None)
    return text if isinstance(text, str) else ""


def normalize(raw: object) -> str | None:
    """Return the trimmed text of ``raw``, or None when there is nothing usable.

    Strings are trimmed. Sequences of fragments have each fragment's ``text``
    joined with newlines. Any other shape, or an all-whitespace result, is None.
    """
    if isinstance(raw, str):
        text = raw.strip()
        return text or None
    if isinstance(raw, (bytes, bytearray)) or not isinstance(raw, Sequence):
        return None
    try:
        text = "\n".join(_fragment_text(f) for f in raw).strip()
    except Exception:
        return None
    return text or None
