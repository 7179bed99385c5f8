"""Command-line interface for GrowFluent."""

from .main import app, main

__all__ = ["app", "main"]
