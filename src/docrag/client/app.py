"""Flask web application for the documentation chat assistant.

This module provides the HTTP API for answering questions with
Retrieval-Augmented Generation (RAG): retrieval from the vector store,
prompt assembly and streamed answers from the chat model.
"""

import logging
import os

from dotenv import load_dotenv
from flask import Flask

from docrag.client.routes import chat_bp, health_bp, init_config
from docrag.constants import DEFAULT_TOP_K, get_context_window
from docrag.llm import get_chat_client, get_embedding_client
from docrag.service.retrieval import RetrievalService
from docrag.service.streaming import CompletionStreamer
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
logger.debug("Environment variables loaded")

# Create Flask app
app = Flask(__name__)
logger.debug("Flask app created")

# Register blueprints
app.register_blueprint(chat_bp)
app.register_blueprint(health_bp)


def initialize_services():
    """Initialize model clients, the vector store and retrieval on startup."""
    logger.info("🔧 Initializing services...")

    embedder = get_embedding_client()
    chat_client = get_chat_client()
    logger.info(f"✅ Models configured: chat={chat_client.model}, embedding={embedder.model}")

    store = ChromaRestClient(ChromaConfig.from_env())
    logger.info(f"✅ Vector store configured: {store.config.host} ({store.collection_name})")

    init_config(
        retrieval_service=RetrievalService(embedder, store),
        chat_client=chat_client,
        streamer=CompletionStreamer(chat_client, context_window=get_context_window()),
        store=store,
        embedding_model=embedder.model,
        top_k=int(os.getenv("TOP_K", str(DEFAULT_TOP_K))),
    )


def create_app():
    """Factory function for creating the Flask application.

    This function is used by WSGI servers like gunicorn to create the app.
    It initializes services before returning the app instance.

    Returns:
        Flask: The configured Flask application instance
    """
    initialize_services()
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting DocRAG Flask application...")

    print("📦 Initializing services...")
    initialize_services()
    print("✅ Services initialized successfully")

    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
