"""Pytest configuration and shared fixtures for the test suite."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from docrag.service.vector_store import ChromaConfig, QueryResult


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def chroma_available() -> bool:
    """Check if a Chroma server is running and accessible.

    Returns:
        True if Chroma is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:8000/api/v2/heartbeat", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def make_response(status_code: int = 200, json_data=None, text: str = "") -> MagicMock:
    """Build a mock ``requests.Response``."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.json.return_value = json_data
    response.text = text
    return response


# Helper fixtures
@pytest.fixture
def mock_embedding():
    """Provide a simple mock embedding vector.

    Returns:
        List of floats representing an embedding vector
    """
    return [0.1, 0.2, 0.3, 0.15, -0.1, 0.05, 0.25, -0.05]


@pytest.fixture
def mock_embedder(mock_embedding):
    """Provide an embedding client that returns one vector per text."""
    embedder = MagicMock()
    embedder.model = "test-embed"
    embedder.embed.return_value = mock_embedding
    embedder.embed_batch.side_effect = lambda texts: [mock_embedding for _ in texts]
    return embedder


@pytest.fixture
def mock_store():
    """Provide a vector store client that accepts every upsert."""
    store = MagicMock()
    store.collection_name = "test-docs"
    store.upsert_batch.side_effect = lambda records: len(records)
    return store


@pytest.fixture
def chroma_config() -> ChromaConfig:
    """Provide a Chroma configuration pointing at a fake host."""
    return ChromaConfig(host="http://chroma.test:8000", collection="test-docs")


@pytest.fixture
def query_results() -> list[QueryResult]:
    """Provide two retrieved chunks from different pages."""
    return [
        QueryResult(
            text="Use the cache option to enable caching.",
            score=0.8,
            distance=0.25,
            source="nextjs-docs - /docs/caching",
            url="https://docs.example.com/docs/caching",
        ),
        QueryResult(
            text="Routes are defined by the folder structure.",
            score=0.5,
            distance=1.0,
            source="nextjs-docs - /docs/routing",
            url="https://docs.example.com/docs/routing",
        ),
    ]


# Test data generators
@pytest.fixture
def create_document_line():
    """Factory fixture to create batch file lines.

    Returns:
        Function that creates a JSON line with custom parameters
    """

    def _create_line(
        url: str = "https://docs.example.com/guide",
        text: str = "A short page about the guide.",
        content_hash: str = "hash-1",
        lastmod: str | None = "2025-01-01",
    ) -> str:
        record = {"url": url, "hash": content_hash, "text": text}
        if lastmod is not None:
            record["lastmod"] = lastmod
        return json.dumps(record)

    return _create_line


@pytest.fixture
def write_batch(tmp_path, create_document_line):
    """Factory fixture to write a batch file of documents.

    Returns:
        Function taking a list of documents (dicts or raw lines) and a file name
    """

    def _write(documents: list, name: str = "batch-001.jsonl") -> Path:
        lines = [doc if isinstance(doc, str) else create_document_line(**doc) for doc in documents]
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


# Service fixtures with skip markers
@pytest.fixture
def ollama_embedder():
    """Provide a live embedding client, skip if Ollama not available."""
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from docrag.llm import get_embedding_client

    return get_embedding_client({"host": "http://localhost:11434"})


@pytest.fixture
def chroma_store(tmp_path):
    """Provide a live store client on a throwaway collection, skip if Chroma not available."""
    if not chroma_available():
        pytest.skip("Chroma server not running on localhost:8000")

    from docrag.service.vector_store import ChromaRestClient

    store = ChromaRestClient(
        ChromaConfig(host="http://localhost:8000", collection=f"test-docrag-{tmp_path.name}")
    )
    yield store
    store.delete_collection()
