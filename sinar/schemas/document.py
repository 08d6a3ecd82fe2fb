"""
Document schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class CategoryInfo(BaseModel):
    """Category summary"""
    id: int
    name: str

    class Config:
        from_attributes = True


class DocumentResponse(BaseModel):
    """Document response"""
    id: int
    title: str
    remark: Optional[str] = None
    filename: str = Field(..., description="Object key in the document bucket")
    original_name: str
    url: Optional[str] = Field(None, description="Download URL")
    preview_url: Optional[str] = None
    category_ids: List[int] = []
    categories: List[CategoryInfo] = []
    uploaded_by: Optional[int] = None
    username_upload: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    is_downloaded: bool = False
    downloaded_at: Optional[datetime] = None
    is_active: bool = True
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_document(cls, document, base_url: str) -> "DocumentResponse":
        return cls(
            id=document.id,
            title=document.title,
            remark=document.remark,
            filename=document.filename,
            original_name=document.original_name,
            url=f"{base_url}/documents/download/{document.id}",
            preview_url=f"{base_url}/documents/preview/{document.id}",
            category_ids=document.category_ids,
            categories=[CategoryInfo.model_validate(k) for k in document.categories],
            uploaded_by=document.uploaded_by,
            username_upload=document.uploader.username if document.uploader else None,
            uploaded_at=document.uploaded_at,
            is_downloaded=document.is_downloaded,
            downloaded_at=document.downloaded_at,
            is_active=document.is_active,
            created_by=document.created_by,
            updated_by=document.updated_by,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )
