"""Rapport: chat-export parsing and relationship analytics."""

__version__ = "0.1.0"
