# plateful/__init__.py
"""Conversation-to-recipe generation service."""

__version__ = "0.3.0"
