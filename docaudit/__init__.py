"""Audit documentation sites for AI agent discoverability."""

__version__ = "1.0.0"
