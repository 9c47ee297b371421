"""Application-wide constants and defaults for DocRAG.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# Chunking
# =============================================================================
CHUNK_MAX_CHARS = 1000  # Character budget per chunk (sized for the embedding model)
CHUNK_OVERLAP_RATIO = 0.15  # Fraction of the budget repeated at the start of the next chunk
CHUNK_ID_PREFIX = "sitemap"
MAX_SLUG_LENGTH = 80

# =============================================================================
# Ingestion
# =============================================================================
UPSERT_BATCH_SIZE = 20  # Chunks embedded and upserted per flush
DEFAULT_INGEST_WORKERS = 4  # Batch worker processes running at once
DEFAULT_INGEST_CACHE_PATH = ".docrag/ingest-cache.json"
BATCH_FILE_SUFFIX = ".jsonl"
DONE_FILE_SUFFIX = ".done.jsonl"

# =============================================================================
# Retrieval and chat
# =============================================================================
DEFAULT_TOP_K = 8  # Default number of chunks retrieved per question
CONTEXT_WINDOW = 10  # Most recent conversation messages sent to the model
MISSING_DISTANCE = 1.0  # Distance assumed when the store omits one

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_CHROMA_HOST = "http://localhost:8000"
DEFAULT_CHROMA_TENANT = "default_tenant"
DEFAULT_CHROMA_DATABASE = "default_database"
DEFAULT_COLLECTION_NAME = "docs"

# =============================================================================
# Model Defaults
# =============================================================================
DEFAULT_CHAT_MODEL = "qwen2.5:7b"
DEFAULT_EMBEDDING_MODEL = "mxbai-embed-large"


def get_embedding_model() -> str:
    """Get the embedding model name.

    Returns:
        str: OLLAMA_EMBEDDING_MODEL if set, otherwise the default model.
    """
    return os.getenv("OLLAMA_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL


def get_chat_model() -> str:
    """Get the chat completion model name.

    Returns:
        str: OLLAMA_MODEL if set, otherwise the default model.
    """
    return os.getenv("OLLAMA_MODEL") or DEFAULT_CHAT_MODEL


def _optional_seconds(env_key: str) -> float | None:
    value = os.getenv(env_key, "").strip()
    if not value:
        return None
    seconds = float(value)
    return seconds if seconds > 0 else None


def get_request_timeout() -> float | None:
    """Get the timeout for upstream HTTP calls.

    No timeout is applied unless REQUEST_TIMEOUT is set to a positive number
    of seconds.

    Returns:
        float | None: Timeout in seconds, or None to wait indefinitely.
    """
    return _optional_seconds("REQUEST_TIMEOUT")


def get_worker_timeout() -> float | None:
    """Get the wall-clock limit for a single batch worker process.

    Returns:
        float | None: Timeout in seconds from WORKER_TIMEOUT, or None.
    """
    return _optional_seconds("WORKER_TIMEOUT")


def get_context_window() -> int:
    """Get the number of conversation messages forwarded to the model.

    Returns:
        int: CONTEXT_WINDOW env value, or the default.
    """
    return int(os.getenv("CONTEXT_WINDOW", str(CONTEXT_WINDOW)))
