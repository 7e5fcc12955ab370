"""Infrastructure layer implementations."""

from stockbook.infrastructure import storage

__all__ = ["storage"]
