"""REST client for the Chroma vector store.

Talks to the Chroma v2 HTTP API directly with ``requests``. One client is
created per process and passed to every caller; it caches the collection id
after the first lookup.
"""

import logging
from typing import Any

import requests

from docrag.errors import StoreError
from docrag.service.vector_store.config import ChromaConfig
from docrag.service.vector_store.models import CollectionStats, QueryResult, VectorRecord
from docrag.service.vector_store.utils import (
    normalize_distance,
    score_from_distance,
    strip_lone_surrogates,
)

logger = logging.getLogger(__name__)

COLLECTION_DESCRIPTION = "Documentation embeddings for RAG"


class ChromaRestClient:
    """Vector store client for a single named Chroma collection."""

    def __init__(
        self,
        config: ChromaConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Connection settings (defaults to ChromaConfig.from_env())
            session: Optional requests session to reuse connections
        """
        self.config = config or ChromaConfig.from_env()
        self.session = session or requests.Session()
        self._collection_id: str | None = None
        logger.info(
            f"🗄️  Initializing ChromaRestClient: host={self.config.host}, "
            f"collection={self.config.collection}"
        )

    @property
    def collection_name(self) -> str:
        return self.config.collection

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
            headers["X-Chroma-Token"] = self.config.api_key
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.config.api_base}{path}"
        try:
            return self.session.request(
                method, url, headers=self._headers(), timeout=self.config.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise StoreError(f"Chroma request {method} {path} failed: {e}") from e

    @staticmethod
    def _json(response: requests.Response, expected: type) -> Any:
        """Decode a response body, raising StoreError unless it is JSON of the expected type."""
        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(f"Chroma returned a non-JSON body ({response.status_code})") from e
        if not isinstance(data, expected):
            raise StoreError(f"Chroma returned an unexpected {type(data).__name__} payload")
        return data

    @staticmethod
    def _collection_id_of(collection: dict[str, Any]) -> str:
        collection_id = collection.get("id")
        if not isinstance(collection_id, str) or not collection_id:
            raise StoreError("Chroma collection payload has no id")
        return collection_id

    def _find_collection(self) -> dict[str, Any] | None:
        """List collections and return the configured one, if it exists."""
        response = self._request("GET", "/collections")
        if not response.ok:
            raise StoreError(f"Failed to list collections: {response.status_code}")

        for collection in self._json(response, list):
            if isinstance(collection, dict) and collection.get("name") == self.collection_name:
                return collection
        return None

    def _existing_collection_id(self) -> str | None:
        """Look up the collection id without creating the collection."""
        if self._collection_id:
            return self._collection_id

        existing = self._find_collection()
        if existing is None:
            return None
        self._collection_id = self._collection_id_of(existing)
        return self._collection_id

    def ensure_collection(self) -> str:
        """Get the collection id, creating the collection if it does not exist.

        The id is cached for the lifetime of this client. Creation asks the
        store for get-or-create semantics; if it still fails (for example a
        concurrent creator won the race), the collection list is re-read once
        before giving up.

        Returns:
            str: The collection id

        Raises:
            StoreError: If the collection can neither be found nor created
        """
        existing_id = self._existing_collection_id()
        if existing_id:
            return existing_id

        logger.info(f"📂 Creating collection '{self.collection_name}'")
        response = self._request(
            "POST",
            "/collections",
            json={
                "name": self.collection_name,
                "metadata": {"description": COLLECTION_DESCRIPTION},
                "get_or_create": True,
            },
        )
        if response.ok:
            self._collection_id = self._collection_id_of(self._json(response, dict))
            return self._collection_id

        logger.warning(
            f"⚠️ Create collection returned {response.status_code}, re-checking collection list"
        )
        existing = self._find_collection()
        if existing is None:
            raise StoreError(f"Failed to create collection: {response.status_code}")
        self._collection_id = self._collection_id_of(existing)
        return self._collection_id

    def upsert_batch(self, records: list[VectorRecord]) -> int:
        """Insert or overwrite records by id.

        Record texts are stripped of lone surrogates before sending.

        Args:
            records: Records with embeddings to write

        Returns:
            int: Number of records written

        Raises:
            StoreError: If the store rejects the batch or cannot be reached
        """
        if not records:
            return 0

        collection_id = self.ensure_collection()
        response = self._request(
            "POST",
            f"/collections/{collection_id}/upsert",
            json={
                "ids": [record.id for record in records],
                "documents": [strip_lone_surrogates(record.text) for record in records],
                "embeddings": [record.embedding for record in records],
                "metadatas": [record.metadata for record in records],
            },
        )
        if not response.ok:
            raise StoreError(f"Chroma upsert failed: {response.status_code} - {response.text}")

        logger.debug(f"Upserted {len(records)} records into '{self.collection_name}'")
        return len(records)

    def query(self, embedding: list[float], top_k: int) -> list[QueryResult]:
        """Find the records nearest to an embedding.

        A missing collection means nothing has been ingested yet and yields an
        empty list rather than an error; the collection is never created here.

        Args:
            embedding: Query embedding
            top_k: Maximum number of results

        Returns:
            list[QueryResult]: At most top_k results, nearest first

        Raises:
            StoreError: If the collection list cannot be read or the
                response body is malformed
        """
        collection_id = self._existing_collection_id()
        if collection_id is None:
            logger.info(f"ℹ️ Collection '{self.collection_name}' does not exist yet")
            return []

        response = self._request(
            "POST",
            f"/collections/{collection_id}/query",
            json={
                "query_embeddings": [embedding],
                "n_results": top_k,
                "include": ["documents", "metadatas", "distances"],
            },
        )
        if not response.ok:
            logger.warning(f"⚠️ Chroma query failed: {response.status_code}")
            return []

        data = self._json(response, dict)
        documents = _first_row(data, "documents")
        metadatas = _first_row(data, "metadatas")
        distances = _first_row(data, "distances")

        results = []
        for i, text in enumerate(documents):
            metadata = metadatas[i] if i < len(metadatas) else None
            if not isinstance(metadata, dict):
                metadata = {}
            distance = normalize_distance(distances[i] if i < len(distances) else None)
            results.append(
                QueryResult(
                    text=text if isinstance(text, str) else "",
                    score=score_from_distance(distance),
                    distance=distance,
                    source=metadata.get("source") or None,
                    url=metadata.get("url") or None,
                )
            )

        results.sort(key=lambda result: result.distance)
        return results[:top_k]

    def count(self) -> int:
        """Count records in the collection (0 when it does not exist).

        Returns:
            int: Number of records
        """
        collection_id = self._existing_collection_id()
        if collection_id is None:
            return 0

        response = self._request("GET", f"/collections/{collection_id}/count")
        if not response.ok:
            raise StoreError(f"Failed to count collection: {response.status_code}")
        return self._json(response, int)

    def collection_stats(self) -> CollectionStats:
        """Get the collection name and record count.

        Returns:
            CollectionStats: Stats, with count 0 if the collection is absent
        """
        return CollectionStats(name=self.collection_name, count=self.count())

    def delete_collection(self) -> bool:
        """Delete the collection and everything in it.

        WARNING: This operation is irreversible.

        Returns:
            bool: True if a collection was deleted, False if none existed
        """
        response = self._request("DELETE", f"/collections/{self.collection_name}")
        self._collection_id = None
        if response.status_code == 404:
            return False
        if not response.ok:
            raise StoreError(f"Failed to delete collection: {response.status_code}")
        return True


def _first_row(data: dict[str, Any], key: str) -> list[Any]:
    """Return the row for the single query embedding from a column of query results."""
    rows = data.get(key) or [[]]
    if not isinstance(rows, list) or not isinstance(rows[0] or [], list):
        raise StoreError(f"Chroma query returned a malformed '{key}' column")
    return rows[0] or []
