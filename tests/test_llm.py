"""Tests for the Ollama clients and client factories."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from docrag.errors import ProviderError
from docrag.llm import (
    OllamaChatClient,
    OllamaEmbeddingClient,
    get_chat_client,
    get_embedding_client,
)


def stream_response(lines, status_code=200):
    response = MagicMock()
    response.ok = status_code < 400
    response.status_code = status_code
    response.text = "error body"
    response.iter_lines.return_value = iter(lines)
    return response


def ndjson(*parts) -> list[bytes]:
    return [json.dumps(part).encode() for part in parts]


class TestOllamaEmbeddingClient:
    """Tests for OllamaEmbeddingClient."""

    def test_embed(self, mock_embedding):
        client = OllamaEmbeddingClient(host="http://test:11434", model="embed-model")
        client.client.embeddings = MagicMock(return_value={"embedding": mock_embedding})

        assert client.embed("hello") == mock_embedding
        client.client.embeddings.assert_called_once_with(model="embed-model", prompt="hello")

    def test_embed_batch_preserves_order(self):
        client = OllamaEmbeddingClient(host="http://test:11434", model="embed-model")
        client.client.embeddings = MagicMock(
            side_effect=lambda model, prompt: {"embedding": [float(len(prompt))]}
        )

        assert client.embed_batch(["a", "bbb", "cc"]) == [[1.0], [3.0], [2.0]]

    def test_embed_failure_raises_provider_error(self):
        client = OllamaEmbeddingClient(host="http://test:11434")
        client.client.embeddings = MagicMock(side_effect=ConnectionError("refused"))

        with pytest.raises(ProviderError):
            client.embed("hello")

    @pytest.mark.parametrize("response", [{}, {"embedding": []}])
    def test_missing_embedding_raises(self, response):
        client = OllamaEmbeddingClient(host="http://test:11434")
        client.client.embeddings = MagicMock(return_value=response)

        with pytest.raises(ProviderError):
            client.embed("hello")

    def test_default_model_from_env(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text")
        assert OllamaEmbeddingClient(host="http://test:11434").model == "nomic-embed-text"


class TestOllamaChatClient:
    """Tests for OllamaChatClient."""

    def test_chat(self):
        client = OllamaChatClient(host="http://test:11434", model="test-model")
        client.client.chat = MagicMock(return_value={"message": {"content": "Hello!"}})
        messages = [{"role": "user", "content": "Say hello"}]

        assert client.chat(messages) == "Hello!"
        client.client.chat.assert_called_once_with(model="test-model", messages=messages)

    def test_chat_failure(self):
        client = OllamaChatClient(host="http://test:11434", model="test-model")
        client.client.chat = MagicMock(side_effect=Exception("model not found"))

        with pytest.raises(ProviderError, match="model not found"):
            client.chat([{"role": "user", "content": "hi"}])

    @patch("docrag.llm.ollama.requests.post")
    def test_stream_chat_yields_fragments(self, mock_post):
        """Fragments are yielded in order; malformed and empty lines are skipped."""
        lines = ndjson({"message": {"content": "The"}}, {"message": {"content": " cat"}})
        lines += [b"", b"{not json", b"[1, 2]"]
        lines += ndjson({"message": {"content": ""}}, {"message": {"content": " sat"}}, {"done": True})
        response = stream_response(lines)
        mock_post.return_value = response
        client = OllamaChatClient(host="http://test:11434/", model="test-model")

        fragments = list(client.stream_chat([{"role": "user", "content": "Story?"}]))

        assert fragments == ["The", " cat", " sat"]
        response.close.assert_called_once()
        url = mock_post.call_args.args[0]
        assert url == "http://test:11434/api/chat"
        assert mock_post.call_args.kwargs["json"]["stream"] is True
        assert mock_post.call_args.kwargs["stream"] is True

    @patch("docrag.llm.ollama.requests.post")
    def test_stream_chat_error_status(self, mock_post):
        mock_post.return_value = stream_response([], status_code=500)
        client = OllamaChatClient(host="http://test:11434", model="test-model")

        with pytest.raises(ProviderError, match="500"):
            list(client.stream_chat([{"role": "user", "content": "hi"}]))
        mock_post.return_value.close.assert_called_once()

    @patch("docrag.llm.ollama.requests.post")
    def test_stream_chat_error_object(self, mock_post):
        mock_post.return_value = stream_response(
            ndjson({"message": {"content": "Hi"}}, {"error": "out of memory"})
        )
        client = OllamaChatClient(host="http://test:11434", model="test-model")
        stream = client.stream_chat([{"role": "user", "content": "hi"}])

        assert next(stream) == "Hi"
        with pytest.raises(ProviderError, match="out of memory"):
            next(stream)

    @patch("docrag.llm.ollama.requests.post")
    def test_stream_chat_connection_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")
        client = OllamaChatClient(host="http://test:11434", model="test-model")

        with pytest.raises(ProviderError):
            list(client.stream_chat([{"role": "user", "content": "hi"}]))

    @patch("docrag.llm.ollama.requests.post")
    def test_closing_stream_closes_response(self, mock_post):
        mock_post.return_value = stream_response(
            ndjson({"message": {"content": "a"}}, {"message": {"content": "b"}})
        )
        client = OllamaChatClient(host="http://test:11434", model="test-model")
        stream = client.stream_chat([{"role": "user", "content": "hi"}])

        next(stream)
        stream.close()

        mock_post.return_value.close.assert_called_once()


class TestFactories:
    """Tests for client factory functions."""

    def test_embedding_client_from_config(self):
        client = get_embedding_client({"host": "http://ollama:11434", "model": "embed", "timeout": 5})

        assert isinstance(client, OllamaEmbeddingClient)
        assert client.host == "http://ollama:11434"
        assert client.model == "embed"

    def test_chat_client_from_env(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        monkeypatch.setenv("OLLAMA_MODEL", "llama3.1:8b")

        client = get_chat_client()

        assert isinstance(client, OllamaChatClient)
        assert client.host == "http://gpu-box:11434"
        assert client.model == "llama3.1:8b"


@pytest.mark.integration
class TestOllamaIntegration:
    """Live embedding call against a local Ollama server."""

    def test_embed(self, ollama_embedder):
        embedding = ollama_embedder.embed("What is a route handler?")
        assert len(embedding) > 0
