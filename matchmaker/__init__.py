"""Matchmaker - queue-based room matchmaking service backed by Redis."""

__version__ = "1.0.0"
