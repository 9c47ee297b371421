"""Health check and status API routes."""

import logging

from flask import Blueprint, jsonify

from docrag.client.routes.config import get_config
from docrag.errors import StoreError

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Reports the configured models and the size of the vector store
    collection. Status is "degraded" when the store cannot be reached.

    Returns:
        JSON with service status
    """
    config = get_config()
    status = "healthy"
    collection = None

    if config.store is None:
        status = "degraded"
    else:
        try:
            collection = config.store.collection_stats().to_dict()
        except StoreError as e:
            logger.warning(f"⚠️ Vector store unreachable: {e}")
            status = "degraded"

    return jsonify(
        {
            "status": status,
            "llm_model": getattr(config.chat_client, "model", None),
            "embedding_model": config.embedding_model,
            "collection": collection,
        }
    )
