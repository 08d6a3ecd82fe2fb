"""
User API
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.integrations.storage_client import StorageClient, get_storage
from sinar.schemas.common import ResponseModel
from sinar.schemas.user import ChangePasswordRequest, ResetPasswordRequest, UserResponse
from sinar.services.media_gateway import MediaGateway, get_media_gateway
from sinar.services.scope import Principal
from sinar.services.user_service import UserService
from sinar.utils.auth import get_current_principal, require_admin
from sinar.utils.query import ListParams, list_params

router = APIRouter(prefix=f"{settings.API_PREFIX}/users", tags=["Users"])
admin_router = APIRouter(prefix=f"{settings.API_PREFIX}/admin/users", tags=["Admin Users"])


def to_response(user) -> UserResponse:
    return UserResponse.from_user(user, settings.API_BASE_URL)


@router.get("", response_model=ResponseModel)
async def list_users(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    List users of the caller's category (all users for admins)
    """
    page = await UserService.list(db, principal, params)
    return ResponseModel.from_page(page.map(to_response), "Success getting all users")


@router.put("/change-password", response_model=ResponseModel)
async def change_password(
    request: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await UserService.change_password(db, principal, request.old_password, request.new_password)
    return ResponseModel(message="Password changed successfully")


@router.get("/logo/{user_id}")
async def preview_logo(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: MediaGateway = Depends(get_media_gateway),
    principal: Principal = Depends(get_current_principal),
):
    return await UserService.logo(db, gateway, principal, user_id)


@router.get("/{user_id}", response_model=ResponseModel)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await UserService.get(db, principal, user_id)
    return ResponseModel(message="Success getting user by id", data=to_response(user))


@admin_router.get("", response_model=ResponseModel)
async def admin_list_users(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    page = await UserService.list(db, principal, params)
    return ResponseModel.from_page(page.map(to_response), "Success getting all users")


@admin_router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_user(
    username: str = Form(...),
    password: str = Form(...),
    role_id: int = Form(...),
    category_id: Optional[int] = Form(None),
    name_mentri: Optional[str] = Form(None),
    contact_person: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None, description="Image, at most 2MB"),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(require_admin),
):
    """
    Create a user; non-admin roles need a category
    """
    user = await UserService.create(
        db,
        storage,
        principal,
        username=username,
        password=password,
        role_id=role_id,
        category_id=category_id,
        name_mentri=name_mentri,
        contact_person=contact_person,
        logo=logo,
    )
    return ResponseModel(code=201, message="User created successfully", data=to_response(user))


@admin_router.put("/{user_id}/reset-password", response_model=ResponseModel)
async def reset_password(
    user_id: int,
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    await UserService.reset_password(db, principal, user_id, request.new_password)
    return ResponseModel(message="Password reset successfully")


@admin_router.put("/{user_id}", response_model=ResponseModel)
async def update_user(
    user_id: int,
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    role_id: Optional[int] = Form(None),
    category_id: Optional[int] = Form(None),
    name_mentri: Optional[str] = Form(None),
    contact_person: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(require_admin),
):
    user = await UserService.update(
        db,
        storage,
        principal,
        user_id,
        username=username,
        password=password,
        role_id=role_id,
        category_id=category_id,
        name_mentri=name_mentri,
        contact_person=contact_person,
        logo=logo,
    )
    return ResponseModel(message="User updated successfully", data=to_response(user))


@admin_router.delete("/{user_id}", response_model=ResponseModel)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    principal: Principal = Depends(require_admin),
):
    """
    Soft delete a user and free the username
    """
    await UserService.delete(db, storage, principal, user_id)
    return ResponseModel(message="User deleted successfully")
