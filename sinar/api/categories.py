"""
Category API
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.schemas.common import ResponseModel
from sinar.schemas.kategori import KategoriCreate, KategoriResponse, KategoriUpdate
from sinar.services.kategori_service import KategoriService
from sinar.services.scope import Principal
from sinar.utils.auth import get_current_principal, require_admin
from sinar.utils.query import ListParams, list_params

router = APIRouter(prefix=f"{settings.API_PREFIX}/categories", tags=["Categories"])
admin_router = APIRouter(prefix=f"{settings.API_PREFIX}/admin/categories", tags=["Admin Categories"])


def to_response(kategori) -> KategoriResponse:
    return KategoriResponse.model_validate(kategori)


@router.get("", response_model=ResponseModel)
@admin_router.get("", response_model=ResponseModel)
async def list_categories(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    page = await KategoriService.list(db, params)
    return ResponseModel.from_page(page.map(to_response), "Success getting all categories")


@router.get("/{kategori_id}", response_model=ResponseModel)
@admin_router.get("/{kategori_id}", response_model=ResponseModel)
async def get_category(
    kategori_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    kategori = await KategoriService.get(db, kategori_id)
    return ResponseModel(message="Success getting category by id", data=to_response(kategori))


@admin_router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: KategoriCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    kategori = await KategoriService.create(db, request.name, principal)
    return ResponseModel(code=201, message="Category created successfully", data=to_response(kategori))


@admin_router.put("/{kategori_id}", response_model=ResponseModel)
async def update_category(
    kategori_id: int,
    request: KategoriUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    kategori = await KategoriService.update(
        db, kategori_id, principal, name=request.name, is_active=request.is_active
    )
    return ResponseModel(message="Category updated successfully", data=to_response(kategori))


@admin_router.delete("/{kategori_id}", response_model=ResponseModel)
async def delete_category(
    kategori_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """
    Soft delete a category
    """
    await KategoriService.delete(db, kategori_id, principal)
    return ResponseModel(message="Category deleted successfully")
