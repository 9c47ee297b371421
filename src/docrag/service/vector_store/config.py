"""Configuration for the Chroma vector store connection."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from docrag.constants import (
    DEFAULT_CHROMA_DATABASE,
    DEFAULT_CHROMA_HOST,
    DEFAULT_CHROMA_TENANT,
    DEFAULT_COLLECTION_NAME,
    get_request_timeout,
)

# Load environment variables
load_dotenv()


@dataclass
class ChromaConfig:
    """Connection details for a Chroma server (local or Chroma Cloud).

    Attributes:
        host: Chroma server URL
        api_key: Token sent with every request when non-empty
        tenant: Chroma tenant name
        database: Chroma database name
        collection: Name of the collection holding the corpus
        timeout: Request timeout in seconds (None = no timeout)
    """

    host: str = DEFAULT_CHROMA_HOST
    api_key: str = ""
    tenant: str = DEFAULT_CHROMA_TENANT
    database: str = DEFAULT_CHROMA_DATABASE
    collection: str = DEFAULT_COLLECTION_NAME
    timeout: float | None = None

    @classmethod
    def from_env(cls) -> "ChromaConfig":
        """Build a configuration from CHROMA_* environment variables.

        Returns:
            ChromaConfig: Configuration with defaults for unset variables
        """
        return cls(
            host=os.getenv("CHROMA_HOST", DEFAULT_CHROMA_HOST),
            api_key=os.getenv("CHROMA_API_KEY", ""),
            tenant=os.getenv("CHROMA_TENANT", DEFAULT_CHROMA_TENANT),
            database=os.getenv("CHROMA_DATABASE", DEFAULT_CHROMA_DATABASE),
            collection=os.getenv("CHROMA_COLLECTION", DEFAULT_COLLECTION_NAME),
            timeout=get_request_timeout(),
        )

    @property
    def api_base(self) -> str:
        """Base URL of the v2 API for the configured tenant and database."""
        return (
            f"{self.host.rstrip('/')}/api/v2/tenants/{self.tenant}"
            f"/databases/{self.database}"
        )
