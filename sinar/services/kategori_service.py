"""
Category service
"""
import logging
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.exceptions import Conflict, NotFound, ValidationError
from sinar.models.kategori import Kategori
from sinar.services.scope import Principal
from sinar.utils.filters import Equals
from sinar.utils.query import ListParams, Page, list_resources

logger = logging.getLogger(__name__)

NAME_LENGTH = Kategori.__table__.c.name.type.length


def to_title_case(text: str) -> str:
    """Lowercase, then capitalize the first letter of each space-separated word"""
    return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))


def deleted_name(name: str, max_length: Optional[int] = None) -> str:
    """Rename for soft delete, trimming the base so the result fits max_length"""
    suffix = f"_deleted_{int(time.time() * 1000)}"
    if max_length is not None:
        name = name[:max(max_length - len(suffix), 0)]
    return name + suffix


class KategoriService:
    """Category service"""

    @staticmethod
    async def list(db: AsyncSession, params: ListParams) -> Page:
        return await list_resources(
            db, Kategori, params.scoped(Equals("is_active", True)), searchable_fields=("name",)
        )

    @staticmethod
    async def get(db: AsyncSession, kategori_id: int) -> Kategori:
        result = await db.execute(
            select(Kategori).where(Kategori.id == kategori_id, Kategori.is_active == True)
        )
        kategori = result.scalar_one_or_none()
        if not kategori:
            raise NotFound("Category not found")
        return kategori

    @staticmethod
    async def _ensure_unique(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Kategori.id).where(Kategori.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Kategori.id != exclude_id)
        if (await db.execute(stmt)).first():
            raise Conflict("Category name already exists")

    @staticmethod
    async def _commit(db: AsyncSession) -> None:
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise Conflict("Category name already exists")

    @classmethod
    async def create(cls, db: AsyncSession, name: str, principal: Principal) -> Kategori:
        """
        Create a category, name stored title-cased

        Raises:
            ValidationError: blank name
            Conflict: name already used (soft-deleted names are renamed, so they never collide)
        """
        name = to_title_case((name or "").strip())
        if not name:
            raise ValidationError("Category name is required")
        await cls._ensure_unique(db, name)

        kategori = Kategori(name=name, is_active=True, created_by=principal.id, updated_by=principal.id)
        db.add(kategori)
        await cls._commit(db)
        logger.info("Category %s created by %s", kategori.id, principal.id)
        return await cls.get(db, kategori.id)

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        kategori_id: int,
        principal: Principal,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Kategori:
        kategori = await cls.get(db, kategori_id)

        if name is not None:
            name = to_title_case(name.strip())
            if not name:
                raise ValidationError("Category name is required")
            if name != kategori.name:
                await cls._ensure_unique(db, name, exclude_id=kategori.id)
                kategori.name = name
        if is_active is False:
            kategori.name = deleted_name(kategori.name, NAME_LENGTH)
            kategori.is_active = False
        kategori.updated_by = principal.id

        await cls._commit(db)
        logger.info("Category %s updated by %s", kategori_id, principal.id)
        result = await db.execute(
            select(Kategori).where(Kategori.id == kategori_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @classmethod
    async def delete(cls, db: AsyncSession, kategori_id: int, principal: Principal) -> None:
        """Soft delete; the name gets a deletion suffix so it can be reused"""
        kategori = await cls.get(db, kategori_id)
        kategori.name = deleted_name(kategori.name, NAME_LENGTH)
        kategori.is_active = False
        kategori.updated_by = principal.id
        await cls._commit(db)
        logger.info("Category %s deleted by %s", kategori_id, principal.id)
