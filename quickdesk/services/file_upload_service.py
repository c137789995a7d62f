# quickdesk/services/file_upload_service.py
"""Ticket attachment storage on the local uploads directory"""
import os
import secrets
import time
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence

from fastapi import UploadFile

from quickdesk.core.config import Settings
from quickdesk.core.logger import get_logger
from quickdesk.utils.exceptions import ValidationError

logger = get_logger(__name__)

# extension -> accepted MIME types
ALLOWED_FILE_TYPES = {
    ".jpg": {"image/jpeg"},
    ".jpeg": {"image/jpeg"},
    ".png": {"image/png"},
    ".gif": {"image/gif"},
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
    ".txt": {"text/plain"},
}

CHUNK_SIZE = 64 * 1024


class FileUploadService:
    """Service for validating, storing and removing uploaded attachments"""

    @staticmethod
    def ensure_upload_dir(settings: Settings) -> Path:
        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        return upload_dir

    @staticmethod
    def normalize_mime_type(content_type: Optional[str]) -> str:
        return (content_type or "").split(";")[0].strip().lower()

    @staticmethod
    def is_allowed(filename: str, content_type: Optional[str]) -> bool:
        """Both the extension and the declared MIME type must be on the allow-list."""
        extension = os.path.splitext(filename or "")[1].lower()
        allowed = ALLOWED_FILE_TYPES.get(extension)
        return bool(allowed) and FileUploadService.normalize_mime_type(content_type) in allowed

    @staticmethod
    def generate_filename(original_name: str) -> str:
        extension = os.path.splitext(original_name)[1].lower()
        return f"attachments-{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"

    @staticmethod
    def save_upload_file(settings: Settings, upload: UploadFile) -> Dict[str, Any]:
        """
        Validate and write one upload to the uploads directory.

        Args:
            settings: Settings carrying upload_dir and max_file_size
            upload: Incoming multipart file

        Returns:
            Dict with filename, original_name, path, size, mime_type

        Raises:
            ValidationError: If the type is not allowed or the file is too large
        """
        original_name = os.path.basename(upload.filename or "")
        if not FileUploadService.is_allowed(original_name, upload.content_type):
            raise ValidationError("Invalid file type. Only images, PDFs, and documents are allowed.")

        upload_dir = FileUploadService.ensure_upload_dir(settings)
        filename = FileUploadService.generate_filename(original_name)
        local_path = upload_dir / filename
        max_mb = settings.max_file_size // (1024 * 1024)

        size = 0
        with open(local_path, "wb") as f:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.max_file_size:
                    break
                f.write(chunk)

        if size > settings.max_file_size:
            FileUploadService.delete_local_file(str(local_path))
            raise ValidationError(f"File too large. Maximum size is {max_mb}MB.")

        logger.info(f"✓ File saved locally: {local_path}")
        return {
            "filename": filename,
            "original_name": original_name,
            "path": str(local_path),
            "size": size,
            "mime_type": FileUploadService.normalize_mime_type(upload.content_type),
        }

    @staticmethod
    def save_uploads(settings: Settings, uploads: Optional[Sequence[UploadFile]]) -> List[Dict[str, Any]]:
        """
        Save a batch of uploads. If any file fails, the ones already written are removed.

        Raises:
            ValidationError: If too many files, or any file is rejected
        """
        uploads = [u for u in (uploads or []) if u is not None and u.filename]
        if len(uploads) > settings.max_attachments:
            raise ValidationError(f"Too many files. Maximum is {settings.max_attachments} files.")

        saved: List[Dict[str, Any]] = []
        try:
            for upload in uploads:
                saved.append(FileUploadService.save_upload_file(settings, upload))
        except ValidationError:
            FileUploadService.delete_files(item["path"] for item in saved)
            raise
        return saved

    @staticmethod
    def delete_local_file(local_file_path: str) -> bool:
        """
        Delete file from local uploads directory

        Returns:
            True if deleted, False otherwise
        """
        try:
            if os.path.exists(local_file_path):
                os.remove(local_file_path)
                logger.info(f"✓ Local file deleted: {local_file_path}")
                return True
            return False
        except OSError as e:
            logger.warning(f"Failed to delete local file {local_file_path}: {e}")
            return False

    @staticmethod
    def delete_files(paths) -> int:
        """Best-effort removal; each delete is attempted independently."""
        return sum(1 for path in paths if FileUploadService.delete_local_file(path))
