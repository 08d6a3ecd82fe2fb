from .role import Role, ADMIN_ROLE, USER_ROLE
from .kategori import Kategori
from .user import User
from .document import Document, document_kategori
from .document_report import DocumentReport, ReportType

__all__ = [
    "Role",
    "ADMIN_ROLE",
    "USER_ROLE",
    "Kategori",
    "User",
    "Document",
    "document_kategori",
    "DocumentReport",
    "ReportType",
]
