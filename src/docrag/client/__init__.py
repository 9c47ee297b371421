"""Ingestion pipeline, command-line tools and the Flask chat application."""
