"""Gemini-backed image tools served over the Model Context Protocol."""

__version__ = "1.1.0"
