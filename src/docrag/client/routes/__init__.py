"""Flask route blueprints for the docrag chat application."""

from docrag.client.routes.chat import chat_bp
from docrag.client.routes.config import get_config, init_config
from docrag.client.routes.health import health_bp

__all__ = [
    "chat_bp",
    "health_bp",
    "init_config",
    "get_config",
]
