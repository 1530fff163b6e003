"""Storage module."""

from .storage import IStorage, SortOrder, Storage

__all__ = ["IStorage", "SortOrder", "Storage"]
