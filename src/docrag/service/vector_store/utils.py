"""Utility functions for vector store operations."""

import math
import re

from docrag.constants import MISSING_DISTANCE

_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def normalize_distance(distance: float | None) -> float:
    """Replace missing, non-numeric or non-finite distances with MISSING_DISTANCE and clamp at 0."""
    if not isinstance(distance, (int, float)) or not math.isfinite(distance):
        return MISSING_DISTANCE
    return max(distance, 0.0)


def score_from_distance(distance: float | None) -> float:
    """Convert a raw distance into a bounded relevance score.

    ``score = 1 / (1 + distance)``: strictly decreasing in distance and in
    (0, 1] for non-negative distances. The distance goes through
    normalize_distance first.

    Args:
        distance: Distance reported by the store

    Returns:
        float: Score between 0 (exclusive) and 1 (inclusive)
    """
    return 1.0 / (1.0 + normalize_distance(distance))


def strip_lone_surrogates(text: str) -> str:
    """Remove unpaired UTF-16 surrogates from text.

    A high surrogate immediately followed by a low surrogate is a valid pair
    and is kept, joined into the code point it encodes. Every other surrogate
    is dropped. All other characters are left untouched.

    Args:
        text: Text that may contain surrogate code points

    Returns:
        str: Text that can be encoded as UTF-8
    """
    if not _SURROGATE_RE.search(text):
        return text

    result = []
    i = 0
    length = len(text)
    while i < length:
        code = ord(text[i])
        if 0xD800 <= code <= 0xDBFF:
            if i + 1 < length and 0xDC00 <= ord(text[i + 1]) <= 0xDFFF:
                low = ord(text[i + 1])
                result.append(chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)))
                i += 2
                continue
        elif not 0xDC00 <= code <= 0xDFFF:
            result.append(text[i])
        i += 1
    return "".join(result)
