from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import asyncio
import logging
import os
import re
import uuid

from fastapi import UploadFile

from sharehub.core.config import settings
from sharehub.utils.exceptions import FileOperationError, FileTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
EXTENSION_PATTERN = re.compile(r"\.[A-Za-z0-9]{1,16}")


@dataclass
class StoredFile:
    key: str
    original_name: str
    size: int
    content_type: str


class LocalStorage:
    """Blob storage on a local directory, addressed by storage key"""

    def __init__(self, base_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR).resolve()
        self.max_file_size = max_file_size or settings.MAX_FILE_SIZE_BYTES

    def ensure_directory_exists(self) -> None:
        """Ensure the upload directory exists, create if not"""
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Error ensuring upload directory exists: {e}") from e

    def _generate_key(self, filename: str) -> str:
        """Generate unique storage key keeping a short alphanumeric extension"""
        file_extension = os.path.splitext(filename or "")[1]
        if not EXTENSION_PATTERN.fullmatch(file_extension):
            file_extension = ""
        return f"{uuid.uuid4().hex}{file_extension}"

    def path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        # Keys never contain separators; refuse anything that escapes base_dir
        if path.parent != self.base_dir:
            raise FileOperationError(f"Invalid storage key: {key}")
        return path

    async def save(self, upload: UploadFile) -> StoredFile:
        """Write an uploaded file to disk in chunks and describe it"""
        self.ensure_directory_exists()
        original_name = upload.filename or "upload"
        key = self._generate_key(original_name)
        path = self.path_for(key)

        size = 0
        try:
            out = await asyncio.to_thread(open, path, "wb")
            try:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_file_size:
                        raise FileTooLargeError(
                            f"File exceeds the {self.max_file_size // (1024 * 1024)}MB limit"
                        )
                    await asyncio.to_thread(out.write, chunk)
            finally:
                await asyncio.to_thread(out.close)
        except FileTooLargeError:
            self.delete(key)
            raise
        except OSError as e:
            self.delete(key)
            raise FileOperationError(f"Error storing file: {e}") from e

        logger.debug(f"Stored upload {original_name} as {key} ({size} bytes)")
        return StoredFile(
            key=key,
            original_name=original_name,
            size=size,
            content_type=upload.content_type or "application/octet-stream",
        )

    def exists(self, key: str) -> bool:
        """Check if a stored file exists"""
        try:
            return self.path_for(key).is_file()
        except FileOperationError:
            return False

    def delete(self, key: str) -> bool:
        """Remove a stored file, missing files count as removed"""
        try:
            self.path_for(key).unlink(missing_ok=True)
            return True
        except (OSError, FileOperationError) as e:
            logger.warning(f"Could not remove stored file {key}: {e}")
            return False

    def is_writable(self) -> bool:
        try:
            self.ensure_directory_exists()
        except FileOperationError:
            return False
        return os.access(self.base_dir, os.W_OK)


# Global storage instance
storage = LocalStorage()
