"""Ollama embedding and chat clients."""

import json
import logging
from collections.abc import Iterator

import ollama
import requests

from docrag.constants import get_chat_model, get_embedding_model
from docrag.errors import ProviderError

logger = logging.getLogger(__name__)


class OllamaEmbeddingClient:
    """Embedding client backed by the Ollama embeddings endpoint.

    Each text is embedded with one ``POST /api/embeddings`` call. Batches are
    embedded sequentially so at most one request is outstanding at a time.
    """

    def __init__(self, host: str, model: str | None = None, timeout: float | None = None) -> None:
        """Initialize the embedding client.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: Embedding model name. If None, uses OLLAMA_EMBEDDING_MODEL
                   or the default model.
            timeout: Optional request timeout in seconds (None = no timeout)
        """
        self.host = host
        self.model = model or get_embedding_model()
        logger.info(f"🧮 Initializing OllamaEmbeddingClient: host={host}, model={self.model}")
        self.client = ollama.Client(host=host, timeout=timeout)

    def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: The text to embed

        Returns:
            list[float]: The embedding vector

        Raises:
            ProviderError: If Ollama fails or returns no embedding
        """
        try:
            response = self.client.embeddings(model=self.model, prompt=text)
        except Exception as e:
            logger.error(f"❌ Ollama embedding error: {e}")
            raise ProviderError(f"Ollama embedding failed: {e}") from e

        try:
            embedding = response["embedding"]
        except (KeyError, TypeError) as e:
            raise ProviderError("Ollama embedding response has no 'embedding' field") from e

        if not embedding:
            raise ProviderError("Ollama returned an empty embedding")
        return list(embedding)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in input order, failing on the first error.

        Args:
            texts: List of text strings to embed

        Returns:
            list[list[float]]: List of embedding vectors
        """
        embeddings = [self.embed(text) for text in texts]
        logger.debug(f"Generated {len(embeddings)} embeddings with {self.model}")
        return embeddings


class OllamaChatClient:
    """Chat client for the Ollama ``/api/chat`` endpoint.

    Non-streaming calls go through the ``ollama`` client. Streaming calls read
    the newline-delimited JSON body with ``requests`` one line at a time, so a
    malformed line can be skipped without losing the rest of the answer.
    """

    def __init__(self, host: str, model: str | None = None, timeout: float | None = None) -> None:
        """Initialize the chat client.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: The model name to use. If None, uses OLLAMA_MODEL or the default.
            timeout: Optional request timeout in seconds (None = no timeout)
        """
        self.host = host.rstrip("/")
        self.model = model or get_chat_model()
        self.timeout = timeout
        logger.info(f"🤖 Initializing OllamaChatClient: host={host}, model={self.model}")
        self.client = ollama.Client(host=host, timeout=timeout)

    def chat(self, messages: list[dict]) -> str:
        """Generate a complete response using Ollama.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.

        Returns:
            str: The generated response content from the model.

        Raises:
            ProviderError: If the Ollama call fails
        """
        logger.info(f"🗣️  Generating response with {self.model}")
        logger.debug(f"Messages: {len(messages)} messages")
        try:
            response = self.client.chat(model=self.model, messages=messages)
            content = response["message"]["content"] or ""
        except Exception as e:
            logger.error(f"❌ Ollama API error: {e}", exc_info=True)
            raise ProviderError(f"Ollama error: {e}") from e

        logger.info(f"✅ Response generated: {len(content)} characters")
        return content

    def stream_chat(self, messages: list[dict]) -> Iterator[str]:
        """Stream a response from Ollama, yielding content fragments.

        The HTTP request is only sent once iteration starts. Closing the
        generator closes the HTTP response.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.

        Yields:
            str: Each non-empty ``message.content`` fragment, in arrival order.

        Raises:
            ProviderError: On transport failure, non-success status, or an
                error object in the stream
        """
        payload = {"model": self.model, "messages": messages, "stream": True}
        logger.info(f"🗣️  Streaming response with {self.model} ({len(messages)} messages)")

        try:
            response = requests.post(
                f"{self.host}/api/chat", json=payload, stream=True, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderError(f"Ollama stream error: {e}") from e

        try:
            if not response.ok:
                raise ProviderError(
                    f"Ollama stream error: {response.status_code} - {response.text}"
                )

            fragments = 0
            for line in response.iter_lines():
                if not line or not line.strip():
                    continue
                try:
                    part = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug(f"Skipping malformed stream line: {line[:100]!r}")
                    continue
                if not isinstance(part, dict):
                    continue
                if part.get("error"):
                    raise ProviderError(f"Ollama stream error: {part['error']}")

                message = part.get("message") or {}
                content = message.get("content") if isinstance(message, dict) else None
                if content:
                    fragments += 1
                    yield content

            logger.info(f"✅ Stream finished: {fragments} fragments")
        except requests.RequestException as e:
            raise ProviderError(f"Ollama stream interrupted: {e}") from e
        finally:
            response.close()
