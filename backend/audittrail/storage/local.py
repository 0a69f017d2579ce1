"""Local filesystem storage.

Blobs are written under ``root/YYYY/MM/DD/{stem}_{uuid}{ext}``; the locator
is that path relative to the root, always with forward slashes. Writes go to
a temporary file first and are renamed into place.
"""

import hashlib
import hmac
import logging
import os
import shutil
import tempfile
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from urllib.parse import urlencode

from ..exceptions import StorageError
from .base import FileStorage

logger = logging.getLogger(__name__)

SIGNED_URL_PATH = "/api/files/blob"


def _safe_stem(name: str) -> str:
    stem = PurePosixPath(name.replace("\\", "/")).stem or "file"
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in stem)[:100]


def _safe_suffix(name: str) -> str:
    suffix = PurePosixPath(name.replace("\\", "/")).suffix
    return suffix if suffix[1:].isalnum() else ""


class LocalFileStorage(FileStorage):
    """Date-partitioned blob store on local disk with HMAC-signed URLs."""

    backend_name = "local"

    def __init__(self, root: str, signing_key: str):
        self.root = Path(root)
        self._signing_key = signing_key.encode()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, locator: str) -> Path:
        """Absolute path for *locator*; refuses anything outside the root."""
        if not locator or locator.startswith(("/", "\\")) or ".." in PurePosixPath(locator).parts:
            raise StorageError("resolve", ValueError(f"Invalid locator: {locator!r}"))
        path = (self.root / locator).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise StorageError("resolve", ValueError(f"Locator escapes storage root: {locator!r}"))
        return path

    def upload(self, stream: BinaryIO, name: str, content_type: str) -> str:
        folder = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        locator = f"{folder}/{_safe_stem(name)}_{uuid.uuid4().hex}{_safe_suffix(name)}"
        target = self._resolve(locator)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=target.parent, delete=False, prefix=".tmp_") as tmp:
                shutil.copyfileobj(stream, tmp)
                tmp_path = Path(tmp.name)
            tmp_path.replace(target)
        except OSError as e:
            logger.error("Blob upload failed: %s", e, extra={"locator": locator})
            raise StorageError("upload", e) from e
        logger.debug("Stored blob", extra={"locator": locator, "content_type": content_type})
        return locator

    def download(self, locator: str) -> BinaryIO:
        path = self._resolve(locator)
        try:
            return open(path, "rb")
        except OSError as e:
            logger.error("Blob download failed: %s", e, extra={"locator": locator})
            raise StorageError("download", e) from e

    def delete(self, locator: str) -> bool:
        path = self._resolve(locator)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Blob delete failed: %s", e, extra={"locator": locator})
            raise StorageError("delete", e) from e

    def exists(self, locator: str) -> bool:
        return self._resolve(locator).is_file()

    def size(self, locator: str) -> int:
        try:
            return self._resolve(locator).stat().st_size
        except OSError as e:
            raise StorageError("size", e) from e

    def copy(self, source: str, destination: str) -> str:
        src = self._resolve(source)
        dst = self._resolve(destination)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dst)
        except OSError as e:
            logger.error("Blob copy failed: %s", e, extra={"locator": source})
            raise StorageError("copy", e) from e
        return destination

    # --- signed URLs ---

    def _signature(self, locator: str, expires: int) -> str:
        message = f"{locator}:{expires}".encode()
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    def signed_url(self, locator: str, ttl: int) -> str:
        self._resolve(locator)
        expires = int(time.time()) + int(ttl)
        query = urlencode({
            "locator": locator,
            "expires": expires,
            "signature": self._signature(locator, expires),
        })
        return f"{SIGNED_URL_PATH}?{query}"

    def verify_signature(self, locator: str, expires: int, signature: str) -> bool:
        """True if *signature* was issued by this store for *locator* and has not expired."""
        if int(expires) < time.time():
            return False
        return hmac.compare_digest(self._signature(locator, int(expires)), signature or "")
