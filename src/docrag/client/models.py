"""Data models for the ingestion pipeline."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from docrag.errors import MalformedRecord


@dataclass(frozen=True)
class ExtractedDocument:
    """One crawled page, as written to a batch file by the crawler.

    Attributes:
        url: Page URL
        content_hash: Hash of the extracted text
        text: Extracted page text
        lastmod: Sitemap modification marker, if any (diagnostic only)
    """

    url: str
    content_hash: str
    text: str
    lastmod: str | None = None

    @classmethod
    def from_json_line(cls, line: str) -> "ExtractedDocument":
        """Parse a batch file line ``{url, hash, text, lastmod?}``.

        Raises:
            MalformedRecord: If the line is not a JSON object with string
                url, hash and text fields and an absolute url
        """
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise MalformedRecord(f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedRecord("record is not a JSON object")
        for key in ("url", "hash", "text"):
            if not isinstance(data.get(key), str):
                raise MalformedRecord(f"missing or non-string field '{key}'")
        if not data["url"].strip():
            raise MalformedRecord("empty url")
        try:
            parts = urlsplit(data["url"])
        except ValueError as e:
            raise MalformedRecord(f"invalid url: {e}") from e
        if not parts.scheme or not parts.netloc:
            raise MalformedRecord(f"url is not absolute: {data['url']!r}")

        lastmod = data.get("lastmod")
        return cls(
            url=data["url"],
            content_hash=data["hash"],
            text=data["text"],
            lastmod=str(lastmod) if lastmod is not None else None,
        )


@dataclass(frozen=True)
class Chunk:
    """A slice of a document's text sized for embedding.

    Attributes:
        id: ``{prefix}:{slug}:{index}``, stable for unchanged text
        text: Chunk text (never empty or whitespace-only)
        source: Human-readable source label
        url: Page URL the chunk came from
        index: Position of the chunk within its document
    """

    id: str
    text: str
    source: str
    url: str
    index: int


@dataclass
class CacheEntry:
    """Last ingested state of one URL."""

    url: str
    hash: str
    lastmod: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "hash": self.hash, "lastmod": self.lastmod}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(url=data["url"], hash=data["hash"], lastmod=data.get("lastmod"))


@dataclass
class BatchRequest:
    """Work order for one batch worker."""

    batch_file: Path
    config_name: str
    cache_path: Path | None = None


@dataclass
class BatchResult:
    """Summary a batch worker reports back to the orchestrator.

    Attributes:
        processed: Documents chunked and upserted
        chunks_added: Chunks upserted
        skipped: Documents unchanged since the last run
        cache_entries: Entries to commit; empty when the batch failed
        error: Reason the batch failed, if it did
    """

    processed: int = 0
    chunks_added: int = 0
    skipped: int = 0
    cache_entries: list[CacheEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "processed": self.processed,
            "chunks_added": self.chunks_added,
            "skipped": self.skipped,
            "cache_entries": [entry.to_dict() for entry in self.cache_entries],
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchResult":
        return cls(
            processed=int(data.get("processed", 0)),
            chunks_added=int(data.get("chunks_added", 0)),
            skipped=int(data.get("skipped", 0)),
            cache_entries=[CacheEntry.from_dict(e) for e in data.get("cache_entries", [])],
            error=data.get("error"),
        )
