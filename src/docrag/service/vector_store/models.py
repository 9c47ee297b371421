"""Data models for vector store records and query results."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class VectorRecord:
    """A chunk with its embedding, as stored in the vector store.

    Records are keyed by ``id``; upserting a record with an existing id
    overwrites it.

    Attributes:
        id: Stable chunk id
        embedding: Vector embedding of ``text``
        text: The chunk text
        source: Human-readable source label
        url: Page URL the chunk came from
    """

    id: str
    embedding: list[float] = field(default_factory=list)
    text: str = ""
    source: str = ""
    url: str = ""

    @property
    def metadata(self) -> dict[str, str]:
        return {"source": self.source, "url": self.url}


@dataclass
class QueryResult:
    """A chunk returned by a similarity query.

    Attributes:
        text: The chunk text
        score: Relevance in (0, 1], higher is closer
        distance: Raw distance reported by the store
        source: Source label, if stored
        url: Page URL, if stored
    """

    text: str
    score: float
    distance: float
    source: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "source": self.source,
            "url": self.url,
            "score": self.score,
            "distance": self.distance,
        }


@dataclass
class CollectionStats:
    """Name and record count of the corpus collection."""

    name: str
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count}
