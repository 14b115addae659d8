"""Task tracker: an in-memory task REST API and an optimistic caching client for it."""

__version__ = "1.0.0"
