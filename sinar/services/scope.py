"""
Authorization scoping

Every list, detail and download path ANDs the caller's scope into its query
(or checks it against the fetched row). Admins see everything; everybody else
sees only resources linked to their own category. A non-admin principal
without a category sees nothing.
"""
from dataclasses import dataclass
from typing import Optional

from sinar.models import ADMIN_ROLE
from sinar.utils.filters import Equals, Filter, MatchAll, MatchNothing, Related


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, taken from a verified token"""

    id: int
    role: str
    category_id: Optional[int] = None
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ADMIN_ROLE


class Scope:
    """Row-level filters for one principal"""

    def __init__(self, principal: Principal):
        self.principal = principal

    @property
    def unrestricted(self) -> bool:
        return self.principal.is_admin

    @property
    def _category_id(self) -> Optional[int]:
        return self.principal.category_id

    def documents(self) -> Filter:
        """Document linked to at least one of the principal's categories"""
        if self.unrestricted:
            return MatchAll()
        if self._category_id is None:
            return MatchNothing()
        return Related("categories", Equals("id", self._category_id))

    def reports(self) -> Filter:
        """Report whose parent document is in scope"""
        if self.unrestricted:
            return MatchAll()
        return Related("document", self.documents())

    def users(self) -> Filter:
        if self.unrestricted:
            return MatchAll()
        if self._category_id is None:
            return MatchNothing()
        return Equals("category_id", self._category_id)

    def admits_document(self, document) -> bool:
        if self.unrestricted:
            return True
        if self._category_id is None or document is None:
            return False
        return any(k.id == self._category_id for k in document.categories)

    def admits_report(self, report) -> bool:
        if self.unrestricted:
            return True
        return report is not None and self.admits_document(report.document)

    def admits_user(self, user) -> bool:
        if self.unrestricted:
            return True
        if self._category_id is None or user is None:
            return False
        return user.category_id == self._category_id


def scope_for(principal: Principal) -> Scope:
    return Scope(principal)
