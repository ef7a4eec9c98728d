"""Capability sharing and collaboration service."""

__version__ = "0.1.0"
