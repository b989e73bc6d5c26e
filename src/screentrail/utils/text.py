"""Text normalization and similarity."""

import re

from difflib import SequenceMatcher

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace and strip the ends."""
    return _WHITESPACE.sub(" ", text).strip()


def text_similarity(a: str, b: str) -> float:
    """
    Case-insensitive similarity ratio between two strings.

    Returns:
        1.0 for identical normalized text, 0.0 when either side is empty
    """
    a_norm = normalize_text(a).casefold()
    b_norm = normalize_text(b).casefold()
    if not a_norm or not b_norm:
        return 0.0
    if a_norm == b_norm:
        return 1.0
    return SequenceMatcher(None, a_norm, b_norm).ratio()
