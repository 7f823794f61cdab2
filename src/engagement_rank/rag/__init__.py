"""Embedding provider, embedding cache, and engagement log."""
