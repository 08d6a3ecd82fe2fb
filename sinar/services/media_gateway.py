"""
Media access gateway

Turns a stored object into an HTTP response in one of three modes:

- download: whole object, Content-Disposition: attachment
- stream:   audio/video with HTTP Range support (206 / 416 / 200)
- preview:  .docx converted to HTML, everything else streamed inline

Callers authorize before calling; nothing here looks at the principal.
Storage failures are logged with full detail and surface as a generic 500.
"""
import io
import logging
import mimetypes
import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import mammoth
from fastapi import Depends
from fastapi.responses import HTMLResponse, StreamingResponse

from sinar.core.exceptions import InternalError, RangeNotSatisfiable
from sinar.integrations.storage_client import StorageClient, StorageException, get_storage

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".mov", ".mkv"}
AUDIO_EXTENSIONS = {".mp3", ".m4a", ".aac", ".wav"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".svg"}
DOCX_EXTENSION = ".docx"

_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"


def parse_range(header: Optional[str], size: int) -> Optional[ByteRange]:
    """
    Parse a "bytes=<start>-<end>" Range header

    Args:
        header: raw Range header value, None when absent
        size: total object size

    Returns:
        ByteRange, or None when no header was sent

    Raises:
        RangeNotSatisfiable: malformed header, start > end, or start/end >= size
    """
    if header is None or not header.strip():
        return None

    match = _RANGE_RE.match(header.strip())
    if not match:
        raise RangeNotSatisfiable(size)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1

    if start >= size or end >= size or start > end:
        raise RangeNotSatisfiable(size)
    return ByteRange(start, end)


def media_type_for(name: str) -> str:
    """Content type from the file extension"""
    ext = os.path.splitext(name or "")[1].lower()
    if ext in VIDEO_EXTENSIONS:
        return "video/mp4"
    guessed, _ = mimetypes.guess_type(f"file{ext}")
    if guessed:
        return guessed
    if ext in AUDIO_EXTENSIONS:
        return "audio/mpeg"
    return "application/octet-stream"


def content_disposition(disposition: str, filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"{disposition}; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{filename}"'


def convert_docx_to_html(data: bytes) -> str:
    """
    Convert a .docx document to HTML

    Headings, paragraphs, lists and tables are kept; images are inlined as
    data URIs by mammoth.
    """
    result = mammoth.convert_to_html(io.BytesIO(data))
    for message in result.messages:
        logger.debug("docx conversion: %s", message)
    return result.value


class MediaGateway:
    """Build streaming responses for stored objects"""

    def __init__(self, storage: StorageClient):
        self.storage = storage

    async def _stat(self, bucket: str, key: str):
        try:
            return await self.storage.stat_object(bucket, key)
        except StorageException:
            logger.exception("Stat failed for %s/%s", bucket, key)
            raise InternalError("Failed to read file from storage")

    async def _open(self, bucket: str, key: str, offset: int = 0, length: Optional[int] = None):
        try:
            return await self.storage.open_object(bucket, key, offset=offset, length=length)
        except StorageException:
            logger.exception("Open failed for %s/%s", bucket, key)
            raise InternalError("Failed to read file from storage")

    async def download(self, bucket: str, key: str, filename: str) -> StreamingResponse:
        """Whole object as an attachment"""
        info = await self._stat(bucket, key)
        body = await self._open(bucket, key)
        return StreamingResponse(
            body,
            status_code=200,
            media_type=info.content_type or media_type_for(filename or key),
            headers={
                "Content-Length": str(info.size),
                "Content-Disposition": content_disposition("attachment", filename or os.path.basename(key)),
            },
        )

    async def stream(self, bucket: str, key: str, range_header: Optional[str]) -> StreamingResponse:
        """
        Range-enabled audio/video streaming

        206 with Content-Range for a satisfiable range, 416 otherwise,
        200 with the whole object when no Range header is sent.
        """
        info = await self._stat(bucket, key)
        media_type = media_type_for(key)
        byte_range = parse_range(range_header, info.size)

        if byte_range is None:
            body = await self._open(bucket, key)
            return StreamingResponse(
                body,
                status_code=200,
                media_type=media_type,
                headers={"Content-Length": str(info.size), "Accept-Ranges": "bytes"},
            )

        body = await self._open(bucket, key, offset=byte_range.start, length=byte_range.length)
        return StreamingResponse(
            body,
            status_code=206,
            media_type=media_type,
            headers={
                "Content-Range": byte_range.content_range(info.size),
                "Accept-Ranges": "bytes",
                "Content-Length": str(byte_range.length),
            },
        )

    async def preview(self, bucket: str, key: str, filename: Optional[str] = None):
        """Inline preview: .docx as HTML, anything else as raw bytes"""
        name = filename or os.path.basename(key)
        if os.path.splitext(key)[1].lower() == DOCX_EXTENSION:
            try:
                data = await self.storage.read_object(bucket, key)
            except StorageException:
                logger.exception("Read failed for %s/%s", bucket, key)
                raise InternalError("Failed to read file from storage")
            try:
                html = convert_docx_to_html(data)
            except Exception:
                logger.exception("DOCX conversion failed for %s/%s", bucket, key)
                raise InternalError("Failed to convert document for preview")
            return HTMLResponse(
                content=html,
                headers={"Content-Disposition": content_disposition("inline", f"{name}.html")},
            )

        info = await self._stat(bucket, key)
        body = await self._open(bucket, key)
        return StreamingResponse(
            body,
            status_code=200,
            media_type=media_type_for(key),
            headers={
                "Content-Length": str(info.size),
                "Content-Disposition": content_disposition("inline", name),
            },
        )

    async def inline_image(self, bucket: str, key: str, filename: Optional[str] = None) -> StreamingResponse:
        """Cacheable inline image (user logos)"""
        info = await self._stat(bucket, key)
        body = await self._open(bucket, key)
        return StreamingResponse(
            body,
            status_code=200,
            media_type=media_type_for(key),
            headers={
                "Content-Length": str(info.size),
                "Content-Disposition": content_disposition("inline", filename or os.path.basename(key)),
                "Cache-Control": "public, max-age=3600",
            },
        )


def get_media_gateway(storage: StorageClient = Depends(get_storage)) -> MediaGateway:
    """Media gateway dependency"""
    return MediaGateway(storage)
