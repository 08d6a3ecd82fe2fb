"""
Document administration API (admin only)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.api.documents import to_response
from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.integrations.storage_client import StorageClient, get_storage
from sinar.schemas.common import ResponseModel
from sinar.services.document_service import DocumentService, parse_category_ids
from sinar.services.scope import Principal
from sinar.utils.auth import require_admin
from sinar.utils.query import ListParams, list_params

router = APIRouter(prefix=f"{settings.API_PREFIX}/admin/documents", tags=["Admin Documents"])


@router.get("", response_model=ResponseModel)
async def list_all_documents(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    page = await DocumentService.list(db, principal, params)
    return ResponseModel.from_page(page.map(to_response), "Success getting all documents")


@router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
@router.post("/upload", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: Optional[UploadFile] = File(None, description="doc, docx or pdf, at most 10MB"),
    category_ids: Optional[List[str]] = Form(None, description="Category ids, repeated or comma-joined"),
    title: Optional[str] = Form(None),
    remark: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(require_admin),
):
    """
    Upload a document linked to one or more categories
    """
    document = await DocumentService.create(
        db,
        storage,
        principal,
        file,
        parse_category_ids(category_ids),
        title=title,
        remark=remark,
    )
    return ResponseModel(code=201, message="Document uploaded successfully", data=to_response(document))


@router.put("/{document_id}", response_model=ResponseModel)
async def update_document(
    document_id: int,
    file: Optional[UploadFile] = File(None),
    category_ids: Optional[List[str]] = Form(None, description="Replaces the current category set"),
    title: Optional[str] = Form(None),
    remark: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(require_admin),
):
    """
    Update a document; a new file replaces the stored one
    """
    document = await DocumentService.update(
        db,
        storage,
        principal,
        document_id,
        upload=file,
        category_ids=parse_category_ids(category_ids) if category_ids is not None else None,
        title=title,
        remark=remark,
    )
    return ResponseModel(message="Document updated successfully", data=to_response(document))


@router.delete("/{document_id}", response_model=ResponseModel)
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """
    Soft delete a document
    """
    await DocumentService.delete(db, principal, document_id)
    return ResponseModel(message="Document deleted successfully")
