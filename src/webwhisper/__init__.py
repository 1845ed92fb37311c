"""Semantic retrieval over crawled web pages."""

__version__ = "0.1.0"
