"""
Document API for all authenticated users
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.schemas.common import ResponseModel
from sinar.schemas.document import DocumentResponse
from sinar.services.document_service import DocumentService
from sinar.services.media_gateway import MediaGateway, get_media_gateway
from sinar.services.scope import Principal
from sinar.utils.auth import get_current_principal
from sinar.utils.query import ListParams, list_params

router = APIRouter(prefix=f"{settings.API_PREFIX}/documents", tags=["Documents"])


def to_response(document) -> DocumentResponse:
    return DocumentResponse.from_document(document, settings.API_BASE_URL)


@router.get("", response_model=ResponseModel)
async def list_documents(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    List documents in the caller's categories (all documents for admins)
    """
    page = await DocumentService.list(db, principal, params)
    return ResponseModel.from_page(page.map(to_response), "Success getting all documents")


@router.get("/download/{document_id}")
async def download_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: MediaGateway = Depends(get_media_gateway),
    principal: Principal = Depends(get_current_principal),
):
    """
    Download the document file; the first download unlocks reporting
    """
    return await DocumentService.download(db, gateway, principal, document_id)


@router.get("/preview/{document_id}")
async def preview_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: MediaGateway = Depends(get_media_gateway),
    principal: Principal = Depends(get_current_principal),
):
    """
    Preview the document inline (.docx rendered as HTML)
    """
    return await DocumentService.preview(db, gateway, principal, document_id)


@router.get("/{document_id}", response_model=ResponseModel)
async def get_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    document = await DocumentService.get(db, principal, document_id)
    return ResponseModel(message="Success getting document by id", data=to_response(document))
