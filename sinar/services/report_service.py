"""
Document report service

A report is attached to a document and is TEXT, LINK, AUDIO or VIDEO. Reports
can only be filed once the document has been downloaded; AUDIO/VIDEO content
is an object key in the report bucket.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy import asc, desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.core.exceptions import InternalError, NotFound, ValidationError
from sinar.integrations.storage_client import (
    StorageClient, StorageException, discard_object, generate_object_name,
)
from sinar.models.document import Document
from sinar.models.document_report import DocumentReport, ReportType
from sinar.services.media_gateway import AUDIO_EXTENSIONS, VIDEO_EXTENSIONS, MediaGateway, media_type_for
from sinar.services.scope import Principal, scope_for
from sinar.utils.filters import And, Equals, Related
from sinar.utils.query import ListParams, Page, list_resources, search_filter
from sinar.utils.uploads import check_upload, has_file, present

logger = logging.getLogger(__name__)

SEARCHABLE_FIELDS = ("description", "original_name", "content", "document.original_name", "document.title")
NOT_DOWNLOADED = "Cannot create report: Document has not been downloaded yet."
GROUP_ORDER_FIELDS = ("id", "updated_at")

# reports of a soft-deleted document are treated as missing
LIVE_DOCUMENT = Related("document", Equals("is_active", True))


@dataclass
class ReportItem:
    """One validated report item waiting to be stored"""
    type: ReportType
    content: Optional[str] = None
    upload: Optional[UploadFile] = None
    size: int = 0

    @property
    def original_name(self) -> Optional[str]:
        return self.upload.filename if self.upload else None


def _media_item(report_type: ReportType, upload: UploadFile) -> ReportItem:
    if report_type == ReportType.AUDIO:
        size = check_upload(upload, AUDIO_EXTENSIONS, settings.MAX_AUDIO_SIZE, label="Audio file")
    else:
        size = check_upload(upload, VIDEO_EXTENSIONS, settings.MAX_VIDEO_SIZE, label="Video file")
    return ReportItem(type=report_type, upload=upload, size=size)


def build_items(
    text: Optional[str] = None,
    link: Optional[str] = None,
    audio: Sequence[UploadFile] = (),
    video: Sequence[UploadFile] = (),
) -> List[ReportItem]:
    """
    Validate every item of a create request before anything is stored

    Raises:
        ValidationError: nothing to store, too many files, bad or oversized media
    """
    items: List[ReportItem] = []
    if text and text.strip():
        items.append(ReportItem(type=ReportType.TEXT, content=text.strip()))
    if link and link.strip():
        items.append(ReportItem(type=ReportType.LINK, content=link.strip()))

    audio, video = present(audio), present(video)
    if len(audio) + len(video) > settings.MAX_REPORT_FILES:
        raise ValidationError(f"At most {settings.MAX_REPORT_FILES} files per report")
    items.extend(_media_item(ReportType.AUDIO, u) for u in audio)
    items.extend(_media_item(ReportType.VIDEO, u) for u in video)

    if not items:
        raise ValidationError("Report requires text, a link or at least one media file")
    return items


@dataclass
class ReportGroupData:
    document: Document
    reports: Dict[str, List[DocumentReport]]
    latest_update: Optional[datetime]


class ReportService:
    """Document report service"""

    @staticmethod
    async def list(db: AsyncSession, principal: Principal, params: ListParams) -> Page:
        """Reports whose document the principal can see"""
        return await list_resources(
            db,
            DocumentReport,
            params.scoped(LIVE_DOCUMENT, scope_for(principal).reports()),
            searchable_fields=SEARCHABLE_FIELDS,
        )

    @staticmethod
    async def grouped(db: AsyncSession, principal: Principal, params: ListParams) -> Page:
        """
        Scoped reports grouped per document

        Groups are ordered by their most recent report update (params.order),
        ties broken by document id, and paginated as a whole. orderBy may only
        name id or updated_at; both order by the latest update.
        """
        if params.order_by not in GROUP_ORDER_FIELDS:
            raise ValidationError(f"Cannot sort by '{params.order_by}'")
        condition = And(
            params.where,
            LIVE_DOCUMENT,
            scope_for(principal).reports(),
            search_filter(params.search, SEARCHABLE_FIELDS),
        ).compile(DocumentReport)
        result = await db.execute(
            select(DocumentReport).where(condition).order_by(desc(DocumentReport.updated_at), asc(DocumentReport.id))
        )

        groups: Dict[int, ReportGroupData] = {}
        for report in result.scalars().all():
            group = groups.get(report.document_id)
            if group is None:
                group = groups[report.document_id] = ReportGroupData(
                    document=report.document,
                    reports={t.value: [] for t in ReportType},
                    latest_update=report.updated_at,
                )
            group.reports[report.type.value].append(report)
            if report.updated_at and (group.latest_update is None or report.updated_at > group.latest_update):
                group.latest_update = report.updated_at

        epoch = datetime.min
        ordered = sorted(groups.values(), key=lambda g: g.document.id)
        ordered.sort(
            key=lambda g: (g.latest_update or epoch).replace(tzinfo=None),
            reverse=params.descending,
        )
        page_data = ordered[params.offset:params.offset + params.limit]
        return Page(total=len(ordered), page=params.page, limit=params.limit, data=page_data)

    @staticmethod
    async def _load(db: AsyncSession, report_id: int) -> Optional[DocumentReport]:
        result = await db.execute(
            select(DocumentReport)
            .where(DocumentReport.id == report_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @classmethod
    async def get(cls, db: AsyncSession, principal: Principal, report_id: int) -> DocumentReport:
        report = await cls._load(db, report_id)
        if not report or not report.document.is_active or not scope_for(principal).admits_report(report):
            raise NotFound("Report not found")
        return report

    @staticmethod
    async def _store(storage: StorageClient, item: ReportItem) -> str:
        folder = item.type.value.lower()
        key = generate_object_name(item.upload.filename, folder)
        try:
            return await storage.put_object(
                settings.MINIO_BUCKET_REPORT,
                key,
                item.upload.file,
                item.size,
                content_type=item.upload.content_type or media_type_for(item.upload.filename),
            )
        except StorageException:
            logger.exception("Report media upload failed")
            raise InternalError("Failed to upload report media")

    @staticmethod
    async def _discard_all(storage: StorageClient, keys: List[str]) -> None:
        for key in keys:
            await discard_object(storage, settings.MINIO_BUCKET_REPORT, key)

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        storage: StorageClient,
        principal: Principal,
        document_id: int,
        description: Optional[str] = None,
        text: Optional[str] = None,
        link: Optional[str] = None,
        audio: Sequence[UploadFile] = (),
        video: Sequence[UploadFile] = (),
    ) -> List[DocumentReport]:
        """
        File one or more reports against a document

        Each item (text, link, every audio/video file) becomes its own row.
        All items are validated, then all media stored, then all rows
        inserted in one transaction; on failure stored media is removed.

        Raises:
            NotFound: document missing, inactive or out of scope
            ValidationError: document not downloaded yet, or invalid items
            InternalError: storage or database failure
        """
        result = await db.execute(
            select(Document).where(Document.id == document_id, Document.is_active == True)
        )
        document = result.scalar_one_or_none()
        if not document or not scope_for(principal).admits_document(document):
            raise NotFound("Document not found")
        if not document.is_downloaded:
            logger.info("Report on document %s rejected, not downloaded yet", document_id)
            raise ValidationError(NOT_DOWNLOADED)

        items = build_items(text=text, link=link, audio=audio, video=video)

        stored: List[str] = []
        try:
            for item in items:
                if item.upload is not None:
                    item.content = await cls._store(storage, item)
                    stored.append(item.content)

            reports = [
                DocumentReport(
                    type=item.type,
                    content=item.content,
                    original_name=item.original_name,
                    description=description,
                    document_id=document.id,
                    user_id=principal.id,
                    is_downloaded=False,
                    created_by=principal.id,
                    updated_by=principal.id,
                )
                for item in items
            ]
            db.add_all(reports)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Report insert failed for document %s", document_id)
            await cls._discard_all(storage, stored)
            raise InternalError("Failed to save report")
        except InternalError:
            await cls._discard_all(storage, stored)
            raise

        logger.info("%d report(s) filed on document %s by %s", len(reports), document_id, principal.id)
        return [await cls._load(db, r.id) for r in reports]

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        storage: StorageClient,
        principal: Principal,
        report_id: int,
        description: Optional[str] = None,
        text: Optional[str] = None,
        link: Optional[str] = None,
        audio: Optional[UploadFile] = None,
        video: Optional[UploadFile] = None,
    ) -> DocumentReport:
        """
        Update description and/or replace the content

        At most one new content source may be given. Replacing content resets
        the download latch; when the old content was media its object is
        removed after the commit.
        """
        report = await cls.get(db, principal, report_id)

        sources = [s for s in (
            (ReportType.TEXT, text) if text and text.strip() else None,
            (ReportType.LINK, link) if link and link.strip() else None,
            (ReportType.AUDIO, audio) if has_file(audio) else None,
            (ReportType.VIDEO, video) if has_file(video) else None,
        ) if s]
        if len(sources) > 1:
            raise ValidationError("Only one of text, link, audio or video can be updated at a time")

        item = None
        if sources:
            report_type, value = sources[0]
            if report_type.is_media:
                item = _media_item(report_type, value)
            else:
                item = ReportItem(type=report_type, content=value.strip())

        old_type, old_content = report.type, report.content
        new_key = None
        if item is not None and item.upload is not None:
            new_key = item.content = await cls._store(storage, item)

        if description is not None:
            report.description = description
        content_changed = item is not None and (item.type != old_type or item.content != old_content)
        if content_changed:
            report.type = item.type
            report.content = item.content
            report.original_name = item.original_name
            report.is_downloaded = False
            report.downloaded_at = None
        report.updated_by = principal.id

        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Report %s update failed", report_id)
            await discard_object(storage, settings.MINIO_BUCKET_REPORT, new_key)
            raise InternalError("Failed to update report")

        if content_changed and old_type.is_media:
            await discard_object(storage, settings.MINIO_BUCKET_REPORT, old_content)
        logger.info("Report %s updated by %s", report_id, principal.id)
        return await cls._load(db, report_id)

    @classmethod
    async def delete(cls, db: AsyncSession, storage: StorageClient, principal: Principal, report_id: int) -> None:
        """Hard delete, the media object goes with it"""
        report = await cls.get(db, principal, report_id)
        media_key = report.content if report.type.is_media else None
        await db.delete(report)
        await db.commit()
        await discard_object(storage, settings.MINIO_BUCKET_REPORT, media_key)
        logger.info("Report %s deleted by %s", report_id, principal.id)

    @staticmethod
    async def mark_downloaded(db: AsyncSession, report_id: int, principal: Principal) -> bool:
        result = await db.execute(
            update(DocumentReport)
            .where(DocumentReport.id == report_id, DocumentReport.is_downloaded == False)
            .values(is_downloaded=True, downloaded_at=datetime.now(timezone.utc), updated_by=principal.id)
        )
        await db.commit()
        return result.rowcount == 1

    @classmethod
    async def _media_report(cls, db: AsyncSession, principal: Principal, report_id: int) -> DocumentReport:
        report = await cls.get(db, principal, report_id)
        if not report.type.is_media:
            raise ValidationError("Report has no media file")
        return report

    @classmethod
    async def download(cls, db: AsyncSession, gateway: MediaGateway, principal: Principal, report_id: int):
        report = await cls._media_report(db, principal, report_id)
        response = await gateway.download(settings.MINIO_BUCKET_REPORT, report.content, report.original_name)
        if await cls.mark_downloaded(db, report.id, principal):
            logger.info("Report %s downloaded for the first time", report.id)
        return response

    @classmethod
    async def preview(
        cls,
        db: AsyncSession,
        gateway: MediaGateway,
        principal: Principal,
        report_id: int,
        range_header: Optional[str] = None,
    ):
        report = await cls._media_report(db, principal, report_id)
        return await gateway.stream(settings.MINIO_BUCKET_REPORT, report.content, range_header)
