"""Persisted record of what has already been ingested.

The cache maps each URL to the content hash it had when it was last ingested.
On re-runs, documents whose hash is unchanged are skipped. The cache is only
ever advisory: a missing or unreadable file just means everything is
reprocessed.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from docrag.client.models import CacheEntry, ExtractedDocument

logger = logging.getLogger(__name__)


class IngestionCache:
    """URL -> CacheEntry mapping backed by a JSON file.

    Persisted form: ``{"<url>": {"hash": "...", "lastmod": "..."}}``.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._entries: dict[str, CacheEntry] = {}

    @classmethod
    def open(cls, path: Path | str) -> "IngestionCache":
        """Create a cache for ``path`` and load it."""
        cache = cls(path)
        cache.load()
        return cache

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """Load entries from disk, starting empty if the file is missing or corrupt."""
        self._entries = {}
        if not self.path.exists():
            logger.info(f"ℹ️ No ingestion cache at {self.path}, processing everything")
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("cache root is not a JSON object")
            for url, value in data.items():
                if isinstance(value, dict) and isinstance(value.get("hash"), str):
                    self._entries[url] = CacheEntry(
                        url=url, hash=value["hash"], lastmod=value.get("lastmod")
                    )
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable ingestion cache {self.path}: {e}")
            self._entries = {}
            return

        logger.info(f"📒 Loaded {len(self._entries)} cache entries from {self.path}")

    def lookup(self, url: str) -> CacheEntry | None:
        return self._entries.get(url)

    def should_reprocess(self, doc: ExtractedDocument) -> bool:
        """Decide whether a document needs ingesting.

        Only the content hash is compared; ``lastmod`` is never used to skip.

        Args:
            doc: The extracted document

        Returns:
            bool: True if the URL is unknown or its hash changed
        """
        entry = self.lookup(doc.url)
        return entry is None or entry.hash != doc.content_hash

    def commit(self, entries: Iterable[CacheEntry]) -> None:
        """Merge entries and atomically rewrite the cache file.

        Callers commit a batch's entries only after the whole batch has been
        upserted.

        Args:
            entries: Entries from a successfully processed batch
        """
        for entry in entries:
            self._entries[entry.url] = entry

        data = {
            url: {"hash": entry.hash, "lastmod": entry.lastmod}
            for url, entry in sorted(self._entries.items())
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {len(data)} cache entries to {self.path}")
