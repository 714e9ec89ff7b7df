"""
Certificate Storage - rendered PDFs on the local filesystem, keyed by certificate id.

The Certificate row stores the path; the binary only ever lives here.
"""

import os
import re
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os

from app.core.config import settings
from app.core.exceptions import StorageError, ValidationError
from app.core.logging_config import logger


# Certificate ids are caller-supplied on submit; keep them to a safe alphabet
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class CertificateStorage:
    """Async read/write of certificate PDFs under a single directory"""

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.base_dir = Path(base_dir) if base_dir else settings.CERTIFICATE_DIR
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, certificate_id: str) -> Path:
        if not certificate_id or not _SAFE_ID.match(certificate_id):
            raise ValidationError(f"Invalid certificate id: {certificate_id!r}", field="certificate_id")
        return self.base_dir / f"{certificate_id}.pdf"

    def is_path_for(self, certificate_id: str, file_path: str) -> bool:
        """True when file_path is exactly where this store keeps certificate_id"""
        try:
            return Path(file_path).resolve() == self.path_for(certificate_id).resolve()
        except (OSError, ValueError):
            return False

    async def save(self, certificate_id: str, pdf_bytes: bytes) -> str:
        path = self.path_for(certificate_id)
        tmp_path = path.with_suffix(".pdf.tmp")
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(pdf_bytes)
            # Readers never observe a partially written PDF
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"[Storage] Failed to write {path}: {e}")
            if tmp_path.exists():
                os.unlink(tmp_path)
            raise StorageError(f"Failed to store certificate file: {e}", path=str(path)) from e

        logger.debug(f"[Storage] Saved {path} ({len(pdf_bytes)} bytes)")
        return str(path)

    async def exists(self, certificate_id: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_for(certificate_id))

    async def read(self, certificate_id: str) -> Optional[bytes]:
        """PDF bytes, or None when the artifact is missing"""
        path = self.path_for(certificate_id)
        if not await aiofiles.os.path.isfile(path):
            return None
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, certificate_id: str) -> bool:
        path = self.path_for(certificate_id)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        logger.info(f"[Storage] Removed {path}")
        return True


# Singleton instance
certificate_storage = CertificateStorage()
