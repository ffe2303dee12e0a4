"""Indexing, resolution and retrieval."""
