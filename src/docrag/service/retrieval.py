"""Query-time retrieval of relevant chunks."""

import logging

from docrag.constants import DEFAULT_TOP_K
from docrag.errors import ProviderError, StoreError
from docrag.llm.base import EmbeddingService
from docrag.service.vector_store import ChromaRestClient, QueryResult

logger = logging.getLogger(__name__)


class RetrievalService:
    """Embeds a question and fetches the nearest chunks from the vector store.

    Retrieval only enriches the prompt, so any failure degrades to "no
    context" instead of failing the question. Results are returned in the
    store's order; there is no re-ranking.
    """

    def __init__(self, embedder: EmbeddingService, store: ChromaRestClient) -> None:
        self.embedder = embedder
        self.store = store

    def retrieve(self, query: str, top_k: int = DEFAULT_TOP_K) -> list[QueryResult]:
        """Retrieve the chunks most similar to a query.

        Args:
            query: The user's question
            top_k: Maximum number of chunks to return

        Returns:
            list[QueryResult]: Nearest chunks first, or [] on any failure
        """
        if not query or not query.strip():
            return []

        logger.info(f"🔍 Retrieving top {top_k} chunks for: '{query[:100]}'")
        try:
            embedding = self.embedder.embed(query)
            results = self.store.query(embedding, top_k)
        except (ProviderError, StoreError) as e:
            logger.warning(f"⚠️ Retrieval failed, answering without context: {e}")
            return []

        logger.info(f"✅ Retrieved {len(results)} chunks")
        return results
