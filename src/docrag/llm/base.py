"""Protocols for the model services DocRAG talks to."""

from collections.abc import Iterator
from typing import Protocol


class EmbeddingService(Protocol):
    """Protocol defining the interface for embedding providers.

    Implementations turn text into fixed-length vectors. They do not retry;
    retry policy belongs to the caller.
    """

    model: str

    def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: The text to embed

        Returns:
            list[float]: The embedding vector

        Raises:
            ProviderError: If the service fails or returns a malformed response
        """
        ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts, preserving input order.

        The whole batch fails on the first error; no partial result is returned.

        Args:
            texts: List of text strings to embed

        Returns:
            list[list[float]]: One embedding vector per input text
        """
        ...


class ChatService(Protocol):
    """Protocol defining the interface for chat completion providers."""

    model: str

    def chat(self, messages: list[dict]) -> str:
        """Generate a complete response in one call.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
                     Example: [{"role": "user", "content": "Hello"}]

        Returns:
            str: The generated response content.
        """
        ...

    def stream_chat(self, messages: list[dict]) -> Iterator[str]:
        """Generate a response incrementally.

        Closing the returned iterator must release the upstream connection.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.

        Yields:
            str: Non-empty content fragments in arrival order.
        """
        ...
