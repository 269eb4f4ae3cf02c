"""
Tests for local object storage and signed download links.
"""

import io
import time

import pytest
from werkzeug.datastructures import FileStorage

from enclave.config import StorageConfig
from enclave.errors import NotFound, ValidationFailed
from enclave.storage import ObjectStore, sanitize_filename


@pytest.fixture
def store(tmp_path):
    return ObjectStore(StorageConfig(root=tmp_path, signed_url_ttl=60), "test-secret")


def upload(data=b"%PDF-1.4 test", filename="Core Rules v2.PDF"):
    return FileStorage(stream=io.BytesIO(data), filename=filename)


class TestSanitizeFilename:

    @pytest.mark.parametrize("raw,expected", [
        ("Core Rules v2.PDF", "core-rules-v2.pdf"),
        ("notes", "notes.pdf"),
        ("weird name.", "weird-name.pdf"),
        (None, "document.pdf"),
        ("ünïcode.pdf", "-n-code.pdf"),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected


class TestObjectStore:

    def test_store_pdf(self, store, tmp_path):
        key = store.store_pdf("rules", 7, upload())
        assert key.startswith("7/")
        assert key.endswith("-core-rules-v2.pdf")
        assert (tmp_path / "rules" / key).read_bytes() == b"%PDF-1.4 test"

    def test_replacing_removes_previous(self, store, tmp_path):
        first = store.store_pdf("rules", 7, upload(filename="a.pdf"))
        second = store.store_pdf("rules", 7, upload(filename="b.pdf"), previous_path=first)
        assert not (tmp_path / "rules" / first).exists()
        assert (tmp_path / "rules" / second).exists()

    def test_empty_upload(self, store):
        with pytest.raises(ValidationFailed):
            store.store_pdf("rules", 7, upload(data=b""))

    def test_missing_owner(self, store):
        with pytest.raises(ValidationFailed):
            store.store_pdf("rules", None, upload())

    @pytest.mark.parametrize("key", ["../secret.pdf", "/etc/passwd", ""])
    def test_path_traversal(self, store, key):
        with pytest.raises(ValidationFailed):
            store._path("rules", key)

    def test_remove_missing_is_quiet(self, store):
        store.remove_if_exists("rules", "1/missing.pdf")
        store.remove_if_exists("rules", None)


class TestSignedTokens:

    def test_round_trip(self, store):
        key = store.store_pdf("rules", 1, upload())
        token = store.signed_token("rules", key)
        assert store.resolve_token(token).name == key.split("/")[1]

    def test_expired(self, store):
        key = store.store_pdf("rules", 1, upload())
        token = store.signed_token("rules", key, expires_in=5)
        with pytest.raises(NotFound, match="expired"):
            store.resolve_token(token, now=time.time() + 10)

    def test_tampered(self, store):
        key = store.store_pdf("rules", 1, upload())
        token = store.signed_token("rules", key)
        with pytest.raises(NotFound):
            store.resolve_token(token[:-2] + "xx")

    def test_other_secret_rejected(self, store, tmp_path):
        key = store.store_pdf("rules", 1, upload())
        token = ObjectStore(StorageConfig(root=tmp_path), "another-secret").signed_token("rules", key)
        with pytest.raises(NotFound):
            store.resolve_token(token)

    def test_download_route(self, app, client):
        from enclave.web.extensions import get_store

        with app.app_context():
            store = get_store()
            key = store.store_pdf("rules-pdfs", 1, upload())
            token = store.signed_token("rules-pdfs", key)

        response = client.get(f"/storage/{token}")
        assert response.status_code == 200
        assert response.mimetype == "application/pdf"
        assert client.get("/storage/not-a-token").status_code == 404
