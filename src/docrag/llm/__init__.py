"""Model service clients for docrag.

This package wraps the external model providers behind two protocols:
- EmbeddingService: text to vectors (OllamaEmbeddingClient)
- ChatService: chat completion, single-shot or streamed (OllamaChatClient)

Usage:
    from docrag.llm import get_chat_client, get_embedding_client

    embedder = get_embedding_client()
    chat = get_chat_client({"model": "qwen2.5:7b"})
"""

from docrag.llm.base import ChatService, EmbeddingService
from docrag.llm.factory import get_chat_client, get_embedding_client
from docrag.llm.ollama import OllamaChatClient, OllamaEmbeddingClient

__all__ = [
    "ChatService",
    "EmbeddingService",
    "OllamaChatClient",
    "OllamaEmbeddingClient",
    "get_chat_client",
    "get_embedding_client",
]
