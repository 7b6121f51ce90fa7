"""
Local disk storage for uploaded files.

Uploads are checked against an allowed MIME list and a size limit, written
under ``UPLOAD_DIR`` with a collision-free name, and exposed to clients as
``<UPLOAD_URL_PREFIX>/<filename>``.
"""

import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from fastapi import UploadFile

from shipment_service.core import get_logger
from shipment_service.core_settings import get_settings
from shipment_service.domain.errors import BadRequest

logger = get_logger(__name__)

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
ATTACHMENT_TYPES = IMAGE_TYPES + ("application/pdf",)

_CHUNK_SIZE = 64 * 1024

@dataclass
class StoredFile:
    filename: str
    original_name: str
    path: str
    mimetype: str
    size: int

class FileStorage:
    def __init__(self, base_dir: str, url_prefix: str = "/uploads"):
        self.base_dir = base_dir
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.base_dir, exist_ok=True)

    @staticmethod
    def make_filename(original_name: str) -> str:
        base, ext = os.path.splitext(os.path.basename(original_name or "file"))
        base = re.sub(r"[^a-z0-9]", "-", base.lower())[:50] or "file"
        suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"
        return f"{base}-{suffix}{ext.lower()}"

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def _disk_path(self, url_path: str) -> Optional[str]:
        if not url_path.startswith(self.url_prefix + "/"):
            return None
        filename = os.path.basename(url_path)
        return os.path.join(self.base_dir, filename)

    def store(
        self,
        upload: UploadFile,
        allowed_types: Sequence[str] = ATTACHMENT_TYPES,
        max_size: Optional[int] = None,
    ) -> StoredFile:
        max_size = max_size or get_settings().MAX_FILE_SIZE
        mimetype = upload.content_type or "application/octet-stream"
        if mimetype not in allowed_types:
            raise BadRequest(f"Invalid file type. Allowed types: {', '.join(allowed_types)}")

        filename = self.make_filename(upload.filename)
        target = os.path.join(self.base_dir, filename)
        size = 0
        with open(target, "wb") as out:
            while True:
                chunk = upload.file.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    break
                out.write(chunk)
        if size > max_size:
            os.remove(target)
            raise BadRequest(f"File size exceeds {max_size / (1024 * 1024):g}MB limit")

        logger.info(
            "Stored upload",
            extra={'extra_fields': {'upload_file': filename, 'size': size, 'mimetype': mimetype}},
        )
        return StoredFile(
            filename=filename,
            original_name=upload.filename or filename,
            path=self.url_for(filename),
            mimetype=mimetype,
            size=size,
        )

    def delete(self, url_path: str) -> bool:
        disk_path = self._disk_path(url_path)
        if not disk_path or not os.path.exists(disk_path):
            return False
        try:
            os.remove(disk_path)
        except OSError as e:
            logger.warning(f"Could not remove stored file {disk_path}: {e}")
            return False
        return True

_storage: Optional[FileStorage] = None

def get_storage() -> FileStorage:
    global _storage
    if _storage is None:
        settings = get_settings()
        _storage = FileStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return _storage
