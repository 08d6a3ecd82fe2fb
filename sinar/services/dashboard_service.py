"""
Dashboard aggregations
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.models.document import Document
from sinar.models.document_report import DocumentReport, ReportType
from sinar.models.role import Role
from sinar.models.user import User
from sinar.schemas.dashboard import (
    DashboardOverview, DocumentStats, MonthlyDocumentStat, MonthlyReportStat,
    ReportStats, RoleCount, UserStats,
)
from sinar.utils.filters import And, DateRange, Equals

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def year_filter(field: str, year: int) -> DateRange:
    """Jan 1st of year (inclusive) to Jan 1st of the next year, UTC"""
    return DateRange(
        field,
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )


class DashboardService:
    """Dashboard statistics"""

    @staticmethod
    async def document_stats(db: AsyncSession, year: int) -> DocumentStats:
        """Active documents uploaded per month of the year"""
        condition = And(Equals("is_active", True), year_filter("uploaded_at", year)).compile(Document)
        result = await db.execute(select(Document.uploaded_at).where(condition))

        counts = [0] * 12
        for (uploaded_at,) in result.all():
            counts[uploaded_at.month - 1] += 1

        monthly = [
            MonthlyDocumentStat(month=i + 1, month_name=MONTH_NAMES[i], total_documents=counts[i])
            for i in range(12)
        ]
        logger.debug("Document stats %s: %s", year, counts)
        return DocumentStats(year=year, monthly_stats=monthly, total_documents_year=sum(counts))

    @staticmethod
    async def report_stats(db: AsyncSession, year: int) -> ReportStats:
        """
        Reports created per month, split by type

        `types` lists only the types that occur in the year, in enum order;
        every month carries a count for each of them.
        """
        condition = year_filter("created_at", year).compile(DocumentReport)
        result = await db.execute(select(DocumentReport.created_at, DocumentReport.type).where(condition))
        rows = result.all()

        seen = {report_type for _, report_type in rows}
        types: List[str] = [t.value for t in ReportType if t in seen]
        by_month: List[Dict[str, int]] = [{t: 0 for t in types} for _ in range(12)]
        for created_at, report_type in rows:
            by_month[created_at.month - 1][report_type.value] += 1

        monthly = [
            MonthlyReportStat(
                month=i + 1,
                month_name=MONTH_NAMES[i],
                total_items=sum(by_month[i].values()),
                by_type=by_month[i],
            )
            for i in range(12)
        ]
        return ReportStats(
            year=year,
            monthly_stats=monthly,
            types=types,
            total_items_year=len(rows),
        )

    @staticmethod
    async def user_stats(db: AsyncSession) -> UserStats:
        """Active/inactive totals and users per role"""
        active_rows = await db.execute(
            select(User.is_active, func.count(User.id)).group_by(User.is_active)
        )
        active = inactive = 0
        for is_active, count in active_rows.all():
            if is_active:
                active = count
            else:
                inactive = count

        role_rows = await db.execute(
            select(User.role_id, Role.name, func.count(User.id))
            .join(Role, Role.id == User.role_id, isouter=True)
            .group_by(User.role_id, Role.name)
            .order_by(User.role_id)
        )
        by_role = [
            RoleCount(role_id=role_id, role_name=name or "Unknown", total_users=count)
            for role_id, name, count in role_rows.all()
        ]
        return UserStats(
            total_users=active + inactive,
            active_users=active,
            inactive_users=inactive,
            by_role=by_role,
        )

    @classmethod
    async def overview(cls, db: AsyncSession, year: int) -> DashboardOverview:
        return DashboardOverview(
            year=year,
            documents=await cls.document_stats(db, year),
            reports=await cls.report_stats(db, year),
            users=await cls.user_stats(db),
        )
