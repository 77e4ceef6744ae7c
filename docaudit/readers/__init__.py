"""Readers that fetch site content."""
