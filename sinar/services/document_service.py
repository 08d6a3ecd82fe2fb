"""
Document service

Upload, replace and soft-delete of documents, plus the scoped read paths
(list, detail, download, preview). Every read path goes through the caller's
Scope; out-of-scope ids look exactly like missing ones.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from fastapi import UploadFile
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.core.exceptions import InternalError, NotFound, ValidationError
from sinar.integrations.storage_client import (
    StorageClient, StorageException, discard_object, generate_object_name,
)
from sinar.models.document import Document
from sinar.models.kategori import Kategori
from sinar.services.media_gateway import MediaGateway, media_type_for
from sinar.services.scope import Principal, scope_for
from sinar.utils.filters import Equals
from sinar.utils.query import ListParams, Page, list_resources
from sinar.utils.uploads import check_upload, has_file

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = {".doc", ".docx", ".pdf"}
SEARCHABLE_FIELDS = ("title", "original_name", "remark")


def parse_category_ids(raw: Optional[Iterable[str]]) -> List[int]:
    """
    Accept repeated form fields and/or comma-joined values

    ["1", "2,3"] -> [1, 2, 3]; duplicates are dropped, order kept.
    """
    ids: List[int] = []
    for value in raw or []:
        for part in str(value).split(","):
            part = part.strip()
            if not part:
                continue
            try:
                category_id = int(part)
            except ValueError:
                raise ValidationError(f"Invalid category id '{part}'")
            if category_id not in ids:
                ids.append(category_id)
    return ids


class DocumentService:
    """Document service"""

    @staticmethod
    async def list(db: AsyncSession, principal: Principal, params: ListParams) -> Page:
        """Active documents visible to the principal"""
        scope = scope_for(principal)
        return await list_resources(
            db,
            Document,
            params.scoped(Equals("is_active", True), scope.documents()),
            searchable_fields=SEARCHABLE_FIELDS,
        )

    @staticmethod
    async def _load(db: AsyncSession, document_id: int) -> Optional[Document]:
        result = await db.execute(
            select(Document)
            .where(Document.id == document_id, Document.is_active == True)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @classmethod
    async def get(cls, db: AsyncSession, principal: Principal, document_id: int) -> Document:
        """
        Fetch one active document

        Raises:
            NotFound: missing, soft-deleted or outside the principal's scope
        """
        document = await cls._load(db, document_id)
        if not document or not scope_for(principal).admits_document(document):
            raise NotFound("Document not found")
        return document

    @staticmethod
    async def resolve_categories(db: AsyncSession, category_ids: List[int]) -> List[Kategori]:
        if not category_ids:
            raise ValidationError("At least one category is required")
        result = await db.execute(
            select(Kategori).where(Kategori.id.in_(category_ids), Kategori.is_active == True)
        )
        categories = list(result.scalars().all())
        found = {k.id for k in categories}
        missing = [i for i in category_ids if i not in found]
        if missing:
            raise ValidationError(f"Invalid category id: {', '.join(str(i) for i in missing)}")
        return categories

    @staticmethod
    async def _store(storage: StorageClient, upload: UploadFile, size: int) -> str:
        key = generate_object_name(upload.filename)
        try:
            return await storage.put_object(
                settings.MINIO_BUCKET_DOCUMENT,
                key,
                upload.file,
                size,
                content_type=upload.content_type or media_type_for(upload.filename),
            )
        except StorageException:
            logger.exception("Document upload failed")
            raise InternalError("Failed to upload document")

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        storage: StorageClient,
        principal: Principal,
        upload: Optional[UploadFile],
        category_ids: List[int],
        title: Optional[str] = None,
        remark: Optional[str] = None,
    ) -> Document:
        """
        Upload a document

        The object is written first, then the row is inserted, given its
        download URL and committed in one transaction. When the database
        step fails the object is removed again.

        Raises:
            ValidationError: missing/oversized/disallowed file, empty or unknown categories
            InternalError: storage or database failure
        """
        if not has_file(upload):
            raise ValidationError("File is required")
        size = check_upload(upload, DOCUMENT_EXTENSIONS, settings.MAX_DOCUMENT_SIZE)
        categories = await cls.resolve_categories(db, category_ids)

        key = await cls._store(storage, upload, size)
        try:
            document = Document(
                title=(title or "").strip() or os.path.splitext(upload.filename)[0],
                remark=remark,
                filename=key,
                original_name=upload.filename,
                uploaded_by=principal.id,
                is_downloaded=False,
                is_active=True,
                created_by=principal.id,
                updated_by=principal.id,
            )
            document.categories = categories
            db.add(document)
            await db.flush()
            document.url = f"{settings.API_BASE_URL}/documents/download/{document.id}"
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Document insert failed, removing %s", key)
            await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, key)
            raise InternalError("Failed to save document")

        logger.info("Document %s uploaded by %s (%s)", document.id, principal.id, key)
        return await cls._load(db, document.id)

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        storage: StorageClient,
        principal: Principal,
        document_id: int,
        upload: Optional[UploadFile] = None,
        category_ids: Optional[List[int]] = None,
        title: Optional[str] = None,
        remark: Optional[str] = None,
    ) -> Document:
        """
        Update metadata, categories (replace-set) and/or the file

        A new file is stored before the row changes; the old object is removed
        only after the commit. Replacing the file resets the download latch.
        """
        document = await cls._load(db, document_id)
        if not document:
            raise NotFound("Document not found")

        new_key = None
        if has_file(upload):
            size = check_upload(upload, DOCUMENT_EXTENSIONS, settings.MAX_DOCUMENT_SIZE)
        if category_ids is not None:
            document.categories = await cls.resolve_categories(db, category_ids)
        if title is not None:
            if not title.strip():
                raise ValidationError("Title cannot be empty")
            document.title = title.strip()
        if remark is not None:
            document.remark = remark

        old_key = None
        if has_file(upload):
            new_key = await cls._store(storage, upload, size)
            old_key = document.filename
            document.filename = new_key
            document.original_name = upload.filename
            document.is_downloaded = False
            document.downloaded_at = None
        document.updated_by = principal.id

        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Document %s update failed", document_id)
            await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, new_key)
            raise InternalError("Failed to update document")

        if old_key and old_key != new_key:
            await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, old_key)
        logger.info("Document %s updated by %s", document_id, principal.id)
        return await cls._load(db, document_id)

    @classmethod
    async def delete(cls, db: AsyncSession, principal: Principal, document_id: int) -> None:
        """
        Soft delete; the stored object is kept

        Raises:
            NotFound: unknown or already inactive document
        """
        document = await cls._load(db, document_id)
        if not document:
            raise NotFound("Document not found or already inactive")
        document.is_active = False
        document.updated_by = principal.id
        await db.commit()
        logger.info("Document %s deleted by %s", document_id, principal.id)

    @staticmethod
    async def mark_downloaded(db: AsyncSession, document_id: int) -> bool:
        """
        Flip the download latch

        Returns:
            bool: True only for the request that flipped it
        """
        result = await db.execute(
            update(Document)
            .where(Document.id == document_id, Document.is_downloaded == False)
            .values(is_downloaded=True, downloaded_at=datetime.now(timezone.utc))
        )
        await db.commit()
        flipped = result.rowcount == 1
        if flipped:
            logger.info("Document %s downloaded for the first time", document_id)
        return flipped

    @classmethod
    async def download(cls, db: AsyncSession, gateway: MediaGateway, principal: Principal, document_id: int):
        document = await cls.get(db, principal, document_id)
        response = await gateway.download(
            settings.MINIO_BUCKET_DOCUMENT, document.filename, document.original_name
        )
        await cls.mark_downloaded(db, document.id)
        return response

    @classmethod
    async def preview(cls, db: AsyncSession, gateway: MediaGateway, principal: Principal, document_id: int):
        document = await cls.get(db, principal, document_id)
        return await gateway.preview(settings.MINIO_BUCKET_DOCUMENT, document.filename, document.original_name)
