"""Exception types shared across the ingestion and query pipelines."""


class DocRAGError(Exception):
    """Base class for all DocRAG errors."""


class ProviderError(DocRAGError):
    """The embedding or completion service failed or answered with garbage."""


class StoreError(DocRAGError):
    """The vector store rejected a request or could not be reached."""


class ChunkingError(DocRAGError):
    """Text could not be chunked.

    The chunker has no failure path for valid parameters, so this is never
    raised today; it is kept so callers can catch every pipeline stage by type.
    """


class MalformedRecord(DocRAGError):
    """A single line of an ingestion batch file could not be parsed."""
