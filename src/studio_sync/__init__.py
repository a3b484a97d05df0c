"""Local-first data reconciliation engine for the studio management console."""

__version__ = "0.1.0"
