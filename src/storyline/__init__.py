"""Storyline: AI growth stories from journal posts and goals."""

__version__ = "0.1.0"
