"""Shared helpers: logging, HTTP, filesystem, prompts and error types."""
