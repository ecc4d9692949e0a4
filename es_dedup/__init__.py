"""Removes duplicate documents from Elasticsearch indices, keyed by databaseId."""

__version__ = "1.0.0"
