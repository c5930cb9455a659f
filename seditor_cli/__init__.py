"""Seditor CLI: complexity-aware, multi-stage AI editing for HTML documents."""

__version__ = "1.0.0"
