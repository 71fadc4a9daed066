"""Agora forum backend: saved searches and system-message notifications."""

__version__ = "0.1.0"
