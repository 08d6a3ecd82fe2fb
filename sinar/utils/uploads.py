"""
Multipart upload helpers
"""
import os
from typing import Iterable, List, Optional

from fastapi import UploadFile

from sinar.core.exceptions import ValidationError

MIB = 1024 * 1024


def file_extension(filename: Optional[str]) -> str:
    return os.path.splitext(filename or "")[1].lower()


def upload_size(upload: UploadFile) -> int:
    """Size of the spooled upload, leaves the stream rewound"""
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def has_file(upload: Optional[UploadFile]) -> bool:
    # browsers send an empty part for an untouched file input
    return upload is not None and bool(upload.filename)


def present(uploads: Optional[Iterable[UploadFile]]) -> List[UploadFile]:
    return [u for u in (uploads or []) if has_file(u)]


def check_upload(upload: UploadFile, allowed_extensions, max_size: int, label: str = "File") -> int:
    """
    Validate extension and size of an upload

    Returns:
        int: the upload size in bytes

    Raises:
        ValidationError: disallowed extension, empty file or file too large
    """
    ext = file_extension(upload.filename)
    if ext not in allowed_extensions:
        allowed = ", ".join(sorted(e.lstrip(".") for e in allowed_extensions))
        raise ValidationError(f"{label} type not allowed, allowed types: {allowed}")
    size = upload_size(upload)
    if size == 0:
        raise ValidationError(f"{label} is empty")
    if size > max_size:
        raise ValidationError(f"{label} size exceeds the limit of {max_size // MIB}MB")
    return size
