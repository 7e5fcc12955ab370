"""Stockbook: purchasing, stock and stock-history service."""

__version__ = "1.0.0"
