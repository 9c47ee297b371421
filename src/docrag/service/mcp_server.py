"""FastMCP server exposing documentation retrieval as MCP tools."""

import logging
import os
from typing import Any

from dotenv import load_dotenv
from fastmcp import FastMCP

from docrag.constants import DEFAULT_TOP_K
from docrag.llm import get_embedding_client
from docrag.service.retrieval import RetrievalService
from docrag.service.vector_store import ChromaConfig, ChromaRestClient

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded for MCP server")

# Create FastMCP instance
mcp = FastMCP("DocRAG Document Retrieval")

_store: ChromaRestClient | None = None
_retrieval: RetrievalService | None = None


def get_store() -> ChromaRestClient:
    """Get the process-wide vector store client, creating it on first use."""
    global _store
    if _store is None:
        _store = ChromaRestClient(ChromaConfig.from_env())
    return _store


def get_retrieval_service() -> RetrievalService:
    """Get the process-wide retrieval service, creating it on first use."""
    global _retrieval
    if _retrieval is None:
        _retrieval = RetrievalService(get_embedding_client(), get_store())
    return _retrieval


async def retrieve_document_chunks_impl(
    query: str, top_k: int = DEFAULT_TOP_K
) -> list[dict[str, Any]]:
    logger.debug(f"MCP Tool: Parameters - query='{query[:100]}', top_k={top_k}")
    if top_k < 1:
        raise ValueError("top_k must be a positive integer")

    results = get_retrieval_service().retrieve(query, top_k=top_k)
    logger.info(f"✅ MCP Tool: Returning {len(results)} results to MCP client")
    return [result.to_dict() for result in results]


async def collection_stats_impl() -> dict[str, Any]:
    logger.info("📂 MCP Tool collection_stats: Counting collection records")
    try:
        return get_store().collection_stats().to_dict()
    except Exception as e:
        error_msg = f"Error fetching collection stats: {type(e).__name__}: {e}"
        logger.error(f"❌ MCP Tool: {error_msg}", exc_info=True)
        raise ValueError(error_msg) from e


@mcp.tool()
async def retrieve_document_chunks(query: str, top_k: int = DEFAULT_TOP_K) -> list[dict[str, Any]]:
    """
    Searches the documentation knowledge base for text chunks that are
    semantically similar to the query. Returns up to top_k chunks, nearest
    first, each with its text, source label, page URL and relevance score.
    Use this tool to find information to answer a user's question.

    Args:
        query: The search query text
        top_k: Number of top results to return (default: 8)
    """
    return await retrieve_document_chunks_impl(query, top_k)


@mcp.tool()
async def collection_stats() -> dict[str, Any]:
    """
    Reports the name of the documentation collection and how many chunks it
    holds. Use this tool to check whether the knowledge base has been
    populated.
    """
    return await collection_stats_impl()


def main() -> None:
    """Entry point for the MCP server command-line interface."""
    logger.info("🚀 Starting DocRAG MCP Server...")
    host = os.getenv("MCP_HOST", "0.0.0.0")
    port = int(os.getenv("MCP_PORT", "8001"))
    mcp.run(transport="sse", host=host, port=port)


if __name__ == "__main__":
    main()
