"""Abstract blob storage interface.

File records hold only an opaque ``storage_locator``; everything that turns
a locator into bytes lives behind this interface so other backends (S3-style
object stores) can replace the local disk.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO


class FileStorage(ABC):
    """Abstract base class for storage backends.

    Implementations raise ``StorageError`` on failure; its message is generic
    and the cause is kept for logs only.
    """

    backend_name = ""

    @abstractmethod
    def upload(self, stream: BinaryIO, name: str, content_type: str) -> str:
        """Store *stream* and return its locator."""

    @abstractmethod
    def download(self, locator: str) -> BinaryIO:
        """Open the blob at *locator* for reading."""

    @abstractmethod
    def delete(self, locator: str) -> bool:
        """Remove the blob. Returns False if it did not exist."""

    @abstractmethod
    def exists(self, locator: str) -> bool:
        pass

    @abstractmethod
    def size(self, locator: str) -> int:
        """Size in bytes."""

    @abstractmethod
    def signed_url(self, locator: str, ttl: int) -> str:
        """Time-limited URL granting read access to the blob for *ttl* seconds."""

    @abstractmethod
    def copy(self, source: str, destination: str) -> str:
        """Copy a blob and return the destination locator."""

    def verify_signature(self, locator: str, expires: int, signature: str) -> bool:
        """Check a URL produced by ``signed_url``. Backends whose URLs are verified elsewhere return False."""
        return False
