"""
Object storage client for MinIO
"""
import logging
import os
import uuid
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from minio import Minio
from starlette.concurrency import run_in_threadpool

from sinar.core.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class StorageException(Exception):
    """Storage operation exception"""
    pass


@dataclass(frozen=True)
class ObjectInfo:
    size: int
    content_type: Optional[str] = None


def generate_object_name(filename: str, folder: str = "") -> str:
    """
    Build a unique object key that keeps the original extension

    Args:
        filename: original file name
        folder: optional key prefix, e.g. "report"

    Returns:
        Object key such as "report/3f2c...e1.mp4"
    """
    ext = os.path.splitext(filename or "")[1].lower()
    name = f"{uuid.uuid4().hex}{ext}"
    return f"{folder}/{name}" if folder else name


class StorageClient:
    """
    MinIO storage client

    The SDK is blocking, so every call runs in the threadpool. All failures are
    raised as StorageException; callers decide what the client gets to see.
    """

    def __init__(self, client: Minio):
        self._client = client

    @classmethod
    def from_settings(cls) -> "StorageClient":
        return cls(Minio(
            endpoint=f"{settings.MINIO_ENDPOINT}:{settings.MINIO_PORT}",
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL,
        ))

    async def ensure_bucket(self, bucket: str) -> None:
        def _ensure():
            if not self._client.bucket_exists(bucket_name=bucket):
                self._client.make_bucket(bucket_name=bucket)
                logger.info("Created bucket %s", bucket)

        try:
            await run_in_threadpool(_ensure)
        except Exception as e:
            raise StorageException(f"Failed to ensure bucket {bucket}: {e}") from e

    async def put_object(
        self,
        bucket: str,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload a stream

        Returns:
            The object key
        """
        try:
            await run_in_threadpool(
                self._client.put_object,
                bucket_name=bucket,
                object_name=object_name,
                data=data,
                length=length,
                content_type=content_type,
            )
        except Exception as e:
            raise StorageException(f"Failed to upload {bucket}/{object_name}: {e}") from e
        logger.info("Stored object %s/%s (%d bytes)", bucket, object_name, length)
        return object_name

    async def remove_object(self, bucket: str, object_name: str) -> None:
        try:
            await run_in_threadpool(
                self._client.remove_object, bucket_name=bucket, object_name=object_name
            )
        except Exception as e:
            raise StorageException(f"Failed to delete {bucket}/{object_name}: {e}") from e
        logger.info("Removed object %s/%s", bucket, object_name)

    async def stat_object(self, bucket: str, object_name: str) -> ObjectInfo:
        try:
            stat = await run_in_threadpool(
                self._client.stat_object, bucket_name=bucket, object_name=object_name
            )
        except Exception as e:
            raise StorageException(f"Failed to stat {bucket}/{object_name}: {e}") from e
        return ObjectInfo(size=stat.size, content_type=stat.content_type)

    async def open_object(
        self, bucket: str, object_name: str, offset: int = 0, length: Optional[int] = None
    ) -> Iterator[bytes]:
        """
        Open an object (or a byte range of it) for streaming

        Args:
            offset: first byte to read
            length: number of bytes to read, None reads to the end

        Returns:
            A chunk iterator that releases the connection when exhausted
        """
        kwargs = {"bucket_name": bucket, "object_name": object_name}
        if offset:
            kwargs["offset"] = offset
        if length:
            kwargs["length"] = length
        try:
            response = await run_in_threadpool(self._client.get_object, **kwargs)
        except Exception as e:
            raise StorageException(f"Failed to open {bucket}/{object_name}: {e}") from e

        def _chunks() -> Iterator[bytes]:
            try:
                for chunk in response.stream(CHUNK_SIZE):
                    yield chunk
            finally:
                response.close()
                response.release_conn()

        return _chunks()

    async def read_object(self, bucket: str, object_name: str) -> bytes:
        """Read a whole object into memory"""
        def _read() -> bytes:
            response = self._client.get_object(bucket_name=bucket, object_name=object_name)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        try:
            return await run_in_threadpool(_read)
        except Exception as e:
            raise StorageException(f"Failed to read {bucket}/{object_name}: {e}") from e


_storage: Optional[StorageClient] = None


def get_storage() -> StorageClient:
    """Storage client dependency"""
    global _storage
    if _storage is None:
        _storage = StorageClient.from_settings()
    return _storage


async def discard_object(storage: StorageClient, bucket: str, object_name: Optional[str]) -> None:
    """Best-effort delete used for cleanup after a replace or a failed write"""
    if not object_name:
        return
    try:
        await storage.remove_object(bucket, object_name)
    except StorageException:
        logger.exception("Could not remove object %s/%s", bucket, object_name)
