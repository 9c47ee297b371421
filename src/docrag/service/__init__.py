"""Query-time services: vector store access, retrieval and answer streaming."""
