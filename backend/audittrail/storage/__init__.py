"""Blob storage backends."""

from functools import lru_cache

from ..core.config import settings
from .base import FileStorage
from .local import LocalFileStorage


@lru_cache(maxsize=1)
def get_storage() -> FileStorage:
    """Process-wide storage backend; overridden in tests via ``app.dependency_overrides``."""
    return LocalFileStorage(settings.storage_path, settings.jwt_secret_key)


__all__ = ["FileStorage", "LocalFileStorage", "get_storage"]
