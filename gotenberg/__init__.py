"""Module system, typed flags, process supervision and shared utilities."""

__version__ = "0.1.0"