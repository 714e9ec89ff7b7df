"""
Unit Tests for CertificateStorage
Tests for: path validation, save/read/delete
"""
import pytest

from app.core.exceptions import ValidationError
from app.services.certificate_storage import CertificateStorage


@pytest.fixture
def store(tmp_path) -> CertificateStorage:
    return CertificateStorage(tmp_path / "pdfs")


class TestPaths:
    def test_path_for(self, store):
        assert store.path_for("CERT-20250302-1A2B3C4D") == store.base_dir / "CERT-20250302-1A2B3C4D.pdf"

    @pytest.mark.parametrize("bad_id", ["", "../etc/passwd", "CERT/1", "CERT 1", "x" * 65])
    def test_unsafe_ids_rejected(self, store, bad_id):
        with pytest.raises(ValidationError):
            store.path_for(bad_id)

    def test_is_path_for(self, store):
        path = str(store.path_for("CERT-1"))

        assert store.is_path_for("CERT-1", path) is True
        assert store.is_path_for("CERT-2", path) is False
        assert store.is_path_for("CERT-1", "/tmp/CERT-1.pdf") is False


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_save_and_read(self, store):
        path = await store.save("CERT-1", b"%PDF-1.4 test")

        assert path == str(store.path_for("CERT-1"))
        assert await store.exists("CERT-1") is True
        assert await store.read("CERT-1") == b"%PDF-1.4 test"
        assert list(store.base_dir.glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_read_missing(self, store):
        assert await store.read("CERT-404") is None
        assert await store.exists("CERT-404") is False

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.save("CERT-1", b"%PDF")

        assert await store.delete("CERT-1") is True
        assert await store.delete("CERT-1") is False
        assert await store.exists("CERT-1") is False
