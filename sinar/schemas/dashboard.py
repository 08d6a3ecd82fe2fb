"""
Dashboard schemas
"""
from pydantic import BaseModel
from typing import Dict, List


class MonthlyDocumentStat(BaseModel):
    month: int
    month_name: str
    total_documents: int = 0


class DocumentStats(BaseModel):
    year: int
    monthly_stats: List[MonthlyDocumentStat]
    total_documents_year: int


class MonthlyReportStat(BaseModel):
    month: int
    month_name: str
    total_items: int = 0
    by_type: Dict[str, int]


class ReportStats(BaseModel):
    year: int
    monthly_stats: List[MonthlyReportStat]
    types: List[str]
    total_items_year: int


class RoleCount(BaseModel):
    role_id: int
    role_name: str
    total_users: int


class UserStats(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    by_role: List[RoleCount]


class DashboardOverview(BaseModel):
    year: int
    documents: DocumentStats
    reports: ReportStats
    users: UserStats
