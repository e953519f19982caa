"""Infra layer utilities (cache file storage)."""

from .storage import CachePolicy, CacheStoreError, SchemaDriftError, SQLiteManager

__all__ = ["CachePolicy", "CacheStoreError", "SQLiteManager", "SchemaDriftError"]
