"""Tests for the local blob store."""

import io
import re
import time
from urllib.parse import parse_qs, urlparse

import pytest

from audittrail.exceptions import StorageError
from audittrail.storage.local import SIGNED_URL_PATH, LocalFileStorage


def _params(url):
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestLocalFileStorage:

    def test_upload_uses_dated_locator(self, storage):
        locator = storage.upload(io.BytesIO(b"hello"), "Quarterly Report.pdf", "application/pdf")
        assert re.fullmatch(r"\d{4}/\d{2}/\d{2}/Quarterly_Report_[0-9a-f]{32}\.pdf", locator)
        assert storage.exists(locator)
        assert storage.size(locator) == 5
        with storage.download(locator) as stream:
            assert stream.read() == b"hello"

    def test_same_name_gets_distinct_locators(self, storage):
        a = storage.upload(io.BytesIO(b"a"), "x.txt", "text/plain")
        b = storage.upload(io.BytesIO(b"b"), "x.txt", "text/plain")
        assert a != b

    def test_delete(self, storage):
        locator = storage.upload(io.BytesIO(b"bye"), "x.txt", "text/plain")
        assert storage.delete(locator) is True
        assert not storage.exists(locator)
        assert storage.delete(locator) is False

    def test_copy(self, storage):
        source = storage.upload(io.BytesIO(b"copy me"), "x.txt", "text/plain")
        storage.copy(source, "copies/x.txt")
        with storage.download("copies/x.txt") as stream:
            assert stream.read() == b"copy me"

    @pytest.mark.parametrize("locator", ["../outside.txt", "/etc/passwd", "a/../../b", ""])
    def test_traversal_rejected(self, storage, locator):
        with pytest.raises(StorageError):
            storage.download(locator)

    def test_missing_blob_raises_storage_error(self, storage):
        with pytest.raises(StorageError):
            storage.download("2024/01/01/missing.txt")


class TestSignedUrls:

    def test_round_trip(self, storage):
        locator = storage.upload(io.BytesIO(b"x"), "x.txt", "text/plain")
        url = storage.signed_url(locator, 60)
        assert url.startswith(SIGNED_URL_PATH + "?")

        params = _params(url)
        assert params["locator"] == locator
        assert storage.verify_signature(locator, int(params["expires"]), params["signature"])

    def test_other_locator_rejected(self, storage):
        a = storage.upload(io.BytesIO(b"a"), "a.txt", "text/plain")
        b = storage.upload(io.BytesIO(b"b"), "b.txt", "text/plain")
        params = _params(storage.signed_url(a, 60))
        assert not storage.verify_signature(b, int(params["expires"]), params["signature"])

    def test_expired_rejected(self, storage):
        locator = storage.upload(io.BytesIO(b"x"), "x.txt", "text/plain")
        params = _params(storage.signed_url(locator, -10))
        assert not storage.verify_signature(locator, int(params["expires"]), params["signature"])

    def test_other_key_rejected(self, storage, tmp_path):
        locator = storage.upload(io.BytesIO(b"x"), "x.txt", "text/plain")
        params = _params(storage.signed_url(locator, 60))
        other = LocalFileStorage(str(tmp_path / "blobs"), "another-key")
        assert not other.verify_signature(locator, int(params["expires"]), params["signature"])
        assert int(params["expires"]) > time.time()
