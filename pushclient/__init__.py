"""Resilient client for a server-push event subscription."""

__version__ = "0.1.0"
