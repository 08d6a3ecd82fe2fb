"""
Document report API

Mounted under /admin/reports but open to every authenticated user: reports
are filtered through the caller's category scope, not the admin role.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.integrations.storage_client import StorageClient, get_storage
from sinar.schemas.common import ResponseModel
from sinar.schemas.report import ReportDocumentInfo, ReportGroup, ReportResponse
from sinar.services.media_gateway import MediaGateway, get_media_gateway
from sinar.services.report_service import ReportService
from sinar.services.scope import Principal
from sinar.utils.auth import get_current_principal
from sinar.utils.query import ListParams, list_params

router = APIRouter(prefix=f"{settings.API_PREFIX}/admin/reports", tags=["Reports"])


def to_response(report) -> ReportResponse:
    return ReportResponse.from_report(report, settings.API_BASE_URL)


def to_group(group) -> ReportGroup:
    document = group.document
    return ReportGroup(
        document=ReportDocumentInfo(
            id=document.id,
            title=document.title,
            original_name=document.original_name,
            url=f"{settings.API_BASE_URL}/documents/download/{document.id}",
        ),
        reports={t: [to_response(r) for r in items] for t, items in group.reports.items()},
        latest_update=group.latest_update,
    )


@router.get("", response_model=ResponseModel)
async def list_reports(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    List reports visible to the caller
    """
    page = await ReportService.list(db, principal, params)
    return ResponseModel.from_page(page.map(to_response), "Success getting all reports")


@router.get("/grouped", response_model=ResponseModel)
async def list_reports_grouped(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Reports grouped per document and bucketed by type, paginated over documents
    """
    page = await ReportService.grouped(db, principal, params)
    return ResponseModel.from_page(page.map(to_group), "Success getting grouped reports")


@router.get("/download/{report_id}")
async def download_report_media(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: MediaGateway = Depends(get_media_gateway),
    principal: Principal = Depends(get_current_principal),
):
    return await ReportService.download(db, gateway, principal, report_id)


@router.get("/preview/{report_id}")
async def preview_report_media(
    report_id: int,
    range_header: Optional[str] = Header(None, alias="Range"),
    db: AsyncSession = Depends(get_db),
    gateway: MediaGateway = Depends(get_media_gateway),
    principal: Principal = Depends(get_current_principal),
):
    """
    Stream audio/video with HTTP Range support
    """
    return await ReportService.preview(db, gateway, principal, report_id, range_header)


@router.get("/{report_id}", response_model=ResponseModel)
async def get_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    report = await ReportService.get(db, principal, report_id)
    return ResponseModel(message="Success getting report by id", data=to_response(report))


@router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_report(
    document_id: int = Form(...),
    description: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    link: Optional[str] = Form(None),
    audio: Optional[List[UploadFile]] = File(None, description="Audio files, at most 30MB each"),
    video: Optional[List[UploadFile]] = File(None, description="Video files, at most 500MB each"),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(get_current_principal),
):
    """
    File reports on a downloaded document

    Text, link and every uploaded file each become a separate report.
    """
    reports = await ReportService.create(
        db,
        storage,
        principal,
        document_id,
        description=description,
        text=text,
        link=link,
        audio=audio or [],
        video=video or [],
    )
    return ResponseModel(
        code=201,
        message="Report created successfully",
        data=[to_response(r) for r in reports],
    )


@router.put("/{report_id}", response_model=ResponseModel)
async def update_report(
    report_id: int,
    description: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    link: Optional[str] = Form(None),
    audio: Optional[UploadFile] = File(None),
    video: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(get_current_principal),
):
    report = await ReportService.update(
        db,
        storage,
        principal,
        report_id,
        description=description,
        text=text,
        link=link,
        audio=audio,
        video=video,
    )
    return ResponseModel(message="Report updated successfully", data=to_response(report))


@router.delete("/{report_id}", response_model=ResponseModel)
async def delete_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(get_current_principal),
):
    await ReportService.delete(db, storage, principal, report_id)
    return ResponseModel(message="Report deleted")
