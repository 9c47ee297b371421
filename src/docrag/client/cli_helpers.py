"""Helper functions for CLI commands."""

import logging
import os

import click

from docrag.constants import CONTENT_PREVIEW_LENGTH
from docrag.errors import StoreError
from docrag.service.vector_store import ChromaConfig, ChromaRestClient, QueryResult


def configure_logging() -> None:
    """Send log records to stderr at LOG_LEVEL (default WARNING for the CLI)."""
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING")),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_store() -> ChromaRestClient:
    return ChromaRestClient(ChromaConfig.from_env())


def format_search_result(
    index: int, result: QueryResult, max_length: int = CONTENT_PREVIEW_LENGTH
) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        result: Retrieved chunk
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    source = result.source or "Unknown"
    content = result.text.replace("\n", " ")
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [f"{index}. [{source}] (score: {result.score:.4f})"]
    if result.url:
        lines.append(f"   {result.url}")
    lines.append(f"   {display_content}")
    lines.append("")
    return "\n".join(lines)


def get_collection_info(store: ChromaRestClient) -> tuple[str, str, int | None]:
    """Get store location, collection name and record count.

    Returns:
        Tuple of (host, collection_name, record count or None if unreachable)
    """
    count = None
    try:
        count = store.count()
    except StoreError as e:
        click.echo(f"✗ Could not reach the vector store: {e}", err=True)
    return store.config.host, store.collection_name, count
