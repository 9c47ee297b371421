"""Shared configuration for route modules."""

from dataclasses import dataclass
from typing import Any

from docrag.constants import DEFAULT_TOP_K


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    Routes read their services from here instead of module globals so tests
    can swap in mocks with ``init_config``.
    """

    retrieval_service: Any = None
    chat_client: Any = None
    streamer: Any = None
    store: Any = None
    embedding_model: str | None = None
    top_k: int = DEFAULT_TOP_K


# Single shared config instance
_config = RouteConfig()


def get_config() -> RouteConfig:
    """Get the shared route configuration.

    Returns:
        RouteConfig instance with current settings
    """
    return _config


def init_config(
    retrieval_service: Any = None,
    chat_client: Any = None,
    streamer: Any = None,
    store: Any = None,
    embedding_model: str | None = None,
    top_k: int | None = None,
) -> None:
    """Initialize the shared route configuration.

    Args:
        retrieval_service: RetrievalService instance
        chat_client: Chat completion client
        streamer: CompletionStreamer wrapping the chat client
        store: Vector store client (used for health checks)
        embedding_model: Name of the embedding model, for status output
        top_k: Default number of chunks retrieved per question
    """
    if retrieval_service is not None:
        _config.retrieval_service = retrieval_service
    if chat_client is not None:
        _config.chat_client = chat_client
    if streamer is not None:
        _config.streamer = streamer
    if store is not None:
        _config.store = store
    if embedding_model is not None:
        _config.embedding_model = embedding_model
    if top_k is not None:
        _config.top_k = top_k
