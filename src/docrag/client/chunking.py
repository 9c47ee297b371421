"""Text chunking for ingestion.

Text is split on paragraph boundaries, then on sentence boundaries, and
packed greedily into chunks of at most ``max_chars`` characters. Segments
with no usable boundary are cut by length. Each chunk after the first starts
with the tail of the previous one so context spanning a boundary survives.
Segments are capped at ``max_chars - overlap - 1`` characters, which leaves
room for the full tail in front of any segment.
"""

import hashlib
import re
from urllib.parse import urlsplit

from docrag.client.models import Chunk
from docrag.constants import (
    CHUNK_ID_PREFIX,
    CHUNK_MAX_CHARS,
    CHUNK_OVERLAP_RATIO,
    MAX_SLUG_LENGTH,
)

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _hard_split(text: str, max_chars: int) -> list[str]:
    """Cut text into pieces of at most max_chars, preferring whitespace."""
    pieces = []
    while len(text) > max_chars:
        cut = text.rfind(" ", 0, max_chars + 1)
        if cut < max_chars // 2:
            cut = max_chars
        piece = text[:cut].strip()
        if piece:
            pieces.append(piece)
        text = text[cut:].lstrip()
    if text.strip():
        pieces.append(text.strip())
    return pieces


def _segments(text: str, max_chars: int) -> list[tuple[str, str]]:
    """Split text into (separator, segment) pairs, each segment within budget.

    The separator is what joins the segment to the one before it when both
    land in the same chunk.
    """
    segments: list[tuple[str, str]] = []
    for paragraph in _PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if len(paragraph) <= max_chars:
            segments.append((PARAGRAPH_SEPARATOR, paragraph))
            continue

        separator = PARAGRAPH_SEPARATOR
        for sentence in _SENTENCE_BREAK.split(paragraph):
            for piece in _hard_split(sentence.strip(), max_chars):
                segments.append((separator, piece))
                separator = SENTENCE_SEPARATOR
    return segments


def _overlap_tail(chunk: str, overlap: int, room: int) -> str:
    """Take up to ``min(overlap, room)`` trailing characters, starting at a word.

    A tail with no whitespace in it is kept as cut.
    """
    size = min(overlap, room)
    if size <= 0:
        return ""
    tail = chunk[-size:]
    if len(chunk) > size and not chunk[-size - 1].isspace():
        space = tail.find(" ")
        if space != -1:
            tail = tail[space + 1 :]
    return tail.strip()


def chunk_text(
    text: str,
    max_chars: int = CHUNK_MAX_CHARS,
    overlap_ratio: float = CHUNK_OVERLAP_RATIO,
) -> list[str]:
    """Split text into overlapping chunks of at most max_chars characters.

    Args:
        text: The text to chunk
        max_chars: Character budget per chunk (default: CHUNK_MAX_CHARS)
        overlap_ratio: Fraction of the budget carried into the next chunk

    Returns:
        list[str]: Non-empty chunks in document order; [] for blank text

    Raises:
        ValueError: If max_chars < 1 or overlap_ratio is outside [0, 1)
    """
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1")
    if not 0 <= overlap_ratio < 1:
        raise ValueError("overlap_ratio must be in [0, 1)")

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    overlap = int(max_chars * overlap_ratio)
    segment_limit = max(max_chars - overlap - 1, 1) if overlap else max_chars

    chunks: list[str] = []
    current = ""
    for separator, segment in _segments(text, segment_limit):
        if not current:
            current = segment
        elif len(current) + len(separator) + len(segment) <= max_chars:
            current = f"{current}{separator}{segment}"
        else:
            chunks.append(current)
            tail = _overlap_tail(current, overlap, max_chars - len(segment) - 1)
            current = f"{tail} {segment}" if tail else segment

    if current:
        chunks.append(current)
    return chunks


def url_slug(url: str) -> str:
    """Derive a stable, id-safe slug from a URL.

    The readable part drops the scheme and collapses everything that is not a
    lower-case letter or digit; a short digest of the full URL keeps URLs that
    collapse to the same text apart.

    Args:
        url: Page URL

    Returns:
        str: Slug such as ``docs-example-com-guide-3f2a9c1b``
    """
    parts = urlsplit(url)
    readable = f"{parts.netloc}{parts.path}" if parts.netloc else url
    slug = _NON_ALNUM.sub("-", readable.lower()).strip("-")[:MAX_SLUG_LENGTH].strip("-")
    digest = hashlib.sha1(url.encode("utf-8", "surrogatepass")).hexdigest()[:8]
    return f"{slug}-{digest}" if slug else digest


def create_chunks(
    text: str,
    id_prefix: str = CHUNK_ID_PREFIX,
    url: str = "",
    source: str = "",
    max_chars: int = CHUNK_MAX_CHARS,
    overlap_ratio: float = CHUNK_OVERLAP_RATIO,
) -> list[Chunk]:
    """Chunk a document's text and assign stable chunk ids.

    Args:
        text: Extracted document text
        id_prefix: First component of every chunk id
        url: Page URL (also used to derive the id slug)
        source: Source label stored with every chunk
        max_chars: Character budget per chunk
        overlap_ratio: Fraction of the budget carried into the next chunk

    Returns:
        list[Chunk]: Chunks with ids ``{id_prefix}:{slug}:{index}``
    """
    slug = url_slug(url)
    return [
        Chunk(id=f"{id_prefix}:{slug}:{index}", text=piece, source=source, url=url, index=index)
        for index, piece in enumerate(chunk_text(text, max_chars, overlap_ratio))
    ]
