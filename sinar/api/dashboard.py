"""
Dashboard API (admin only)
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.db.database import get_db
from sinar.schemas.common import ResponseModel
from sinar.services.dashboard_service import DashboardService
from sinar.services.scope import Principal
from sinar.utils.auth import require_admin

router = APIRouter(prefix=f"{settings.API_PREFIX}/admin/dashboard", tags=["Dashboard"])


def _year(year: Optional[int]) -> int:
    return year or datetime.now().year


@router.get("/stats/documents", response_model=ResponseModel)
async def document_stats(
    year: Optional[int] = Query(None, ge=1970, le=9999, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    stats = await DashboardService.document_stats(db, _year(year))
    return ResponseModel(message="Success getting document statistics", data=stats)


@router.get("/stats/reports", response_model=ResponseModel)
async def report_stats(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    stats = await DashboardService.report_stats(db, _year(year))
    return ResponseModel(message="Success getting report statistics", data=stats)


@router.get("/stats/users", response_model=ResponseModel)
async def user_stats(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    stats = await DashboardService.user_stats(db)
    return ResponseModel(message="Success getting user statistics", data=stats)


@router.get("/overview", response_model=ResponseModel)
async def overview(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    data = await DashboardService.overview(db, _year(year))
    return ResponseModel(message="Success getting dashboard overview", data=data)
