"""Conversational agent core for the daycare assistant."""

__version__ = "0.1.0"
