"""
Document report schemas
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional, List
from datetime import datetime


class ReportDocumentInfo(BaseModel):
    id: int
    title: Optional[str] = None
    original_name: Optional[str] = None
    url: Optional[str] = None


class ReportUserInfo(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    """Report response"""
    id: int
    type: str = Field(..., description="TEXT | LINK | AUDIO | VIDEO")
    content: str = Field(..., description="Text, URL or object key")
    original_name: Optional[str] = None
    description: Optional[str] = None
    document_id: int
    user_id: Optional[int] = None
    is_downloaded: bool = False
    downloaded_at: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    document: Optional[ReportDocumentInfo] = None
    user: Optional[ReportUserInfo] = None
    download_url: Optional[str] = None
    preview_url: Optional[str] = None

    @classmethod
    def from_report(cls, report, base_url: str) -> "ReportResponse":
        is_media = report.type.is_media
        document = report.document
        return cls(
            id=report.id,
            type=report.type.value,
            content=report.content,
            original_name=report.original_name,
            description=report.description,
            document_id=report.document_id,
            user_id=report.user_id,
            is_downloaded=report.is_downloaded,
            downloaded_at=report.downloaded_at,
            created_by=report.created_by,
            updated_by=report.updated_by,
            created_at=report.created_at,
            updated_at=report.updated_at,
            document=ReportDocumentInfo(
                id=document.id,
                title=document.title,
                original_name=document.original_name,
                url=f"{base_url}/documents/download/{document.id}",
            ) if document else None,
            user=ReportUserInfo.model_validate(report.user) if report.user else None,
            download_url=f"{base_url}/admin/reports/download/{report.id}" if is_media else None,
            preview_url=f"{base_url}/admin/reports/preview/{report.id}" if is_media else None,
        )


class ReportGroup(BaseModel):
    """Reports of one document, bucketed by type"""
    document: ReportDocumentInfo
    reports: Dict[str, List[ReportResponse]]
    latest_update: Optional[datetime] = None
