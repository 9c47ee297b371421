"""Factory functions for creating model client instances."""

import logging
import os

from dotenv import load_dotenv

from docrag.constants import DEFAULT_OLLAMA_HOST, get_request_timeout
from docrag.llm.base import ChatService, EmbeddingService
from docrag.llm.ollama import OllamaChatClient, OllamaEmbeddingClient

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_embedding_client(config: dict | None = None) -> EmbeddingService:
    """Factory function to create an embedding client.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'model': Embedding model (default: from OLLAMA_EMBEDDING_MODEL env)
                - 'timeout': Request timeout in seconds (default: from REQUEST_TIMEOUT env)

    Returns:
        EmbeddingService: An instance implementing the EmbeddingService protocol.
    """
    if config is None:
        config = {}

    host = config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
    return OllamaEmbeddingClient(
        host=host,
        model=config.get("model"),
        timeout=config.get("timeout", get_request_timeout()),
    )


def get_chat_client(config: dict | None = None) -> ChatService:
    """Factory function to create a chat completion client.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'model': Model name (default: from OLLAMA_MODEL env)
                - 'timeout': Request timeout in seconds (default: from REQUEST_TIMEOUT env)

    Returns:
        ChatService: An instance implementing the ChatService protocol.
    """
    if config is None:
        config = {}

    host = config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
    return OllamaChatClient(
        host=host,
        model=config.get("model"),
        timeout=config.get("timeout", get_request_timeout()),
    )
