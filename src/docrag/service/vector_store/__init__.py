"""Vector store access for DocRAG.

This package wraps the Chroma REST API:
- Configuration (ChromaConfig)
- Collection lifecycle, batched upsert and similarity query (ChromaRestClient)
- Record and result models
- Score derivation and text sanitization helpers

Usage:
    from docrag.service.vector_store import ChromaConfig, ChromaRestClient

    store = ChromaRestClient(ChromaConfig.from_env())
    results = store.query(embedding, top_k=8)
"""

from docrag.service.vector_store.client import ChromaRestClient
from docrag.service.vector_store.config import ChromaConfig
from docrag.service.vector_store.models import CollectionStats, QueryResult, VectorRecord
from docrag.service.vector_store.utils import (
    normalize_distance,
    score_from_distance,
    strip_lone_surrogates,
)

__all__ = [
    # Config
    "ChromaConfig",
    # Client
    "ChromaRestClient",
    # Models
    "CollectionStats",
    "QueryResult",
    "VectorRecord",
    # Utils
    "normalize_distance",
    "score_from_distance",
    "strip_lone_surrogates",
]
