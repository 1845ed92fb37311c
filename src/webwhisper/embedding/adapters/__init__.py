"""Embedding provider adapters; import the one you need directly."""
