"""Visitor check-in core: ingestion, lifecycle, notifications and audit."""

__version__ = "0.1.0"
