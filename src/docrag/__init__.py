"""DocRAG: retrieval-augmented chat over a documentation corpus."""

__version__ = "0.1.0"
