"""Configuration, logging, URL safety and data models."""
