"""Profile image storage on the local file system."""

import logging
import os
from pathlib import Path

import filetype

from app.config import get_settings
from app.security import random_string
from app.validation import decode_base64

logger = logging.getLogger("account_service")

ALLOWED_IMAGE_TYPES = {"image/png", "image/jpeg"}
IMAGE_NAME_LENGTH = 32


class FileService:
    """Handles profile image folders, storage and removal."""

    def profile_folder(self) -> Path:
        return Path(get_settings().profile_folder)

    def create_folders(self) -> None:
        """Create the upload and profile folders if they are missing."""
        settings = get_settings()
        Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
        self.profile_folder().mkdir(parents=True, exist_ok=True)

    def detect_mime(self, payload: bytes) -> str | None:
        """Sniff the MIME type from magic numbers; the declared name is ignored."""
        kind = filetype.guess(payload)
        return kind.mime if kind else None

    def save_profile_image(self, image_base64: str) -> str:
        """Decode and store an image. Returns the generated file name."""
        payload = decode_base64(image_base64)
        if payload is None:
            raise ValueError("Image payload is not valid base64")
        filename = random_string(IMAGE_NAME_LENGTH)
        folder = self.profile_folder()
        folder.mkdir(parents=True, exist_ok=True)
        (folder / filename).write_bytes(payload)
        return filename

    def delete_profile_image(self, filename: str | None) -> None:
        """Remove a stored image. Missing files are ignored."""
        if not filename:
            return
        file_path = self.profile_folder() / filename
        if file_path.exists():
            os.remove(file_path)
        else:
            logger.warning("Profile image %s already gone", filename)


_file_service: FileService | None = None


def get_file_service() -> FileService:
    """Get singleton file service instance."""
    global _file_service
    if _file_service is None:
        _file_service = FileService()
    return _file_service
