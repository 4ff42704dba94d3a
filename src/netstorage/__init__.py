"""Async client for ACS action-header storage."""

__version__ = "0.1.0"
