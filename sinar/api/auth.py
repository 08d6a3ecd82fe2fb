"""
Auth API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.cache import CacheStore, get_cache
from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.schemas.auth import LoginRequest
from sinar.schemas.common import ResponseModel
from sinar.services.auth_service import AuthService
from sinar.services.scope import Principal
from sinar.utils.auth import get_current_principal, get_current_token

router = APIRouter(prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])


@router.post("/login", response_model=ResponseModel)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Log in with username and password
    """
    result = await AuthService.login(db, request.username, request.password)
    return ResponseModel(message="Login successful", data=result)


@router.post("/logout", response_model=ResponseModel)
async def logout(
    token: str = Depends(get_current_token),
    principal: Principal = Depends(get_current_principal),
    cache: CacheStore = Depends(get_cache),
):
    """
    Revoke the current token
    """
    await AuthService.logout(cache, token, principal.id)
    return ResponseModel(message="Logout successful. Token has been invalidated.")
