import logging
import os
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from fastapi import UploadFile

from .config import settings
from .errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".jpg", ".jpeg", ".png"}
INVALID_TYPE_MESSAGE = "Invalid file type. Only PDF, DOC(X), XLS(X), PPT(X), JPG, and PNG files are allowed."


@dataclass
class PendingUpload:
    filename: str
    extension: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StoredUpload:
    filename: str
    file_path: str
    file_size: int
    file_type: str


def file_extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower()


def validate_filename(filename: str | None) -> str:
    if not filename:
        raise ValidationError("Uploaded file is missing a filename")
    extension = file_extension(filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(INVALID_TYPE_MESSAGE)
    return extension


def read_uploads(files: Iterable[UploadFile]) -> list[PendingUpload]:
    """Validate every upload fully in memory; nothing touches the disk here."""
    uploads = list(files)
    if len(uploads) > settings.max_upload_files:
        raise ValidationError(f"At most {settings.max_upload_files} files can be uploaded at once")

    pending = []
    for upload in uploads:
        extension = validate_filename(upload.filename)
        content = upload.file.read(settings.max_upload_bytes + 1)
        if len(content) > settings.max_upload_bytes:
            raise ValidationError(f"File {upload.filename} exceeds the {settings.max_upload_bytes // (1024 * 1024)}MB limit")
        pending.append(
            PendingUpload(
                filename=upload.filename,
                extension=extension,
                content_type=upload.content_type or "application/octet-stream",
                content=content,
            )
        )
    return pending


def store_uploads(pending: Iterable[PendingUpload], upload_dir: str | None = None) -> list[StoredUpload]:
    directory = upload_dir or settings.upload_dir
    os.makedirs(directory, exist_ok=True)

    stored: list[StoredUpload] = []
    try:
        for upload in pending:
            file_path = os.path.join(directory, f"{uuid.uuid4()}{upload.extension}")
            with open(file_path, "wb") as buffer:
                buffer.write(upload.content)
            stored.append(
                StoredUpload(
                    filename=upload.filename,
                    file_path=file_path,
                    file_size=upload.size,
                    file_type=upload.content_type,
                )
            )
    except OSError:
        remove_files(item.file_path for item in stored)
        raise
    return stored


def remove_files(paths: Iterable[str]) -> None:
    for path in paths:
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as exc:
            logger.warning(f"Could not remove stored file {path}: {exc}")
