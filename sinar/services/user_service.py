"""
User service
"""
import logging
from typing import Optional

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.config import settings
from sinar.core.exceptions import Conflict, InternalError, NotFound, ValidationError
from sinar.integrations.storage_client import (
    StorageClient, StorageException, discard_object, generate_object_name,
)
from sinar.models import ADMIN_ROLE
from sinar.models.kategori import Kategori
from sinar.models.role import Role
from sinar.models.user import User
from sinar.services.kategori_service import deleted_name
from sinar.services.media_gateway import IMAGE_EXTENSIONS, MediaGateway, media_type_for
from sinar.services.scope import Principal, scope_for
from sinar.utils.auth import hash_password, verify_password
from sinar.utils.filters import Equals
from sinar.utils.query import ListParams, Page, list_resources
from sinar.utils.uploads import check_upload, has_file

logger = logging.getLogger(__name__)

SEARCHABLE_FIELDS = ("username", "name_mentri", "contact_person")
LOGO_FOLDER = "logo"
MIN_PASSWORD_LENGTH = 6
USERNAME_LENGTH = User.__table__.c.username.type.length


def _check_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


class UserService:
    """User service"""

    @staticmethod
    async def list(db: AsyncSession, principal: Principal, params: ListParams) -> Page:
        """Active users; non-admins see only users of their own category"""
        return await list_resources(
            db,
            User,
            params.scoped(Equals("is_active", True), scope_for(principal).users()),
            searchable_fields=SEARCHABLE_FIELDS,
        )

    @staticmethod
    async def _load(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(
            select(User)
            .where(User.id == user_id, User.is_active == True)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @classmethod
    async def get(cls, db: AsyncSession, principal: Principal, user_id: int) -> User:
        user = await cls._load(db, user_id)
        if not user or not scope_for(principal).admits_user(user):
            raise NotFound("User not found")
        return user

    @staticmethod
    async def _role(db: AsyncSession, role_id: int) -> Role:
        role = await db.get(Role, role_id)
        if not role:
            raise ValidationError("Invalid role id")
        return role

    @staticmethod
    async def _check_category(db: AsyncSession, role: Role, category_id: Optional[int]) -> None:
        """Non-admin users must belong to an active category"""
        if category_id is None:
            if role.name.lower() != ADMIN_ROLE:
                raise ValidationError("Category is required for non-admin users")
            return
        result = await db.execute(
            select(Kategori.id).where(Kategori.id == category_id, Kategori.is_active == True)
        )
        if not result.first():
            raise ValidationError("Invalid category id")

    @staticmethod
    async def _ensure_unique(db: AsyncSession, username: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(User.id).where(User.username == username)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if (await db.execute(stmt)).first():
            raise Conflict("Username already exists")

    @staticmethod
    async def _store_logo(storage: StorageClient, logo: UploadFile) -> str:
        size = check_upload(logo, IMAGE_EXTENSIONS, settings.MAX_LOGO_SIZE, label="Logo")
        key = generate_object_name(logo.filename, LOGO_FOLDER)
        try:
            return await storage.put_object(
                settings.MINIO_BUCKET_DOCUMENT,
                key,
                logo.file,
                size,
                content_type=logo.content_type or media_type_for(logo.filename),
            )
        except StorageException:
            logger.exception("Logo upload failed")
            raise InternalError("Failed to upload logo")

    @staticmethod
    async def _commit(db: AsyncSession, storage: StorageClient, new_logo: Optional[str]) -> None:
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, new_logo)
            raise Conflict("Username already exists")
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("User write failed")
            await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, new_logo)
            raise InternalError("Failed to save user")

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        storage: StorageClient,
        principal: Principal,
        username: str,
        password: str,
        role_id: int,
        category_id: Optional[int] = None,
        name_mentri: Optional[str] = None,
        contact_person: Optional[str] = None,
        logo: Optional[UploadFile] = None,
    ) -> User:
        """
        Create a user

        Raises:
            ValidationError: short password, unknown role, missing or unknown category, bad logo
            Conflict: username taken by a live user
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required")
        _check_password(password)
        role = await cls._role(db, role_id)
        await cls._check_category(db, role, category_id)
        await cls._ensure_unique(db, username)

        logo_key = await cls._store_logo(storage, logo) if has_file(logo) else None
        user = User(
            username=username,
            password=hash_password(password),
            role_id=role.id,
            category_id=category_id,
            name_mentri=name_mentri,
            contact_person=contact_person,
            filepath=logo_key,
            original_name=logo.filename if logo_key else None,
            is_active=True,
            created_by=principal.id,
            updated_by=principal.id,
        )
        db.add(user)
        await cls._commit(db, storage, logo_key)
        logger.info("User %s created by %s", user.id, principal.id)
        return await cls._load(db, user.id)

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        storage: StorageClient,
        principal: Principal,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        role_id: Optional[int] = None,
        category_id: Optional[int] = None,
        name_mentri: Optional[str] = None,
        contact_person: Optional[str] = None,
        logo: Optional[UploadFile] = None,
    ) -> User:
        """
        Update profile fields; passwords go through change/reset instead

        The role/category rule is checked against the resulting values.
        """
        if password is not None:
            raise ValidationError("Password cannot be changed here, use the password endpoints")

        user = await cls._load(db, user_id)
        if not user:
            raise NotFound("User not found")

        role = await cls._role(db, role_id if role_id is not None else user.role_id)
        effective_category = category_id if category_id is not None else user.category_id
        await cls._check_category(db, role, effective_category)

        if username is not None:
            username = username.strip()
            if not username:
                raise ValidationError("Username cannot be empty")
            if username != user.username:
                await cls._ensure_unique(db, username, exclude_id=user.id)
                user.username = username

        new_logo = await cls._store_logo(storage, logo) if has_file(logo) else None
        old_logo = None
        if new_logo:
            old_logo = user.filepath
            user.filepath = new_logo
            user.original_name = logo.filename

        user.role_id = role.id
        user.category_id = effective_category
        if name_mentri is not None:
            user.name_mentri = name_mentri
        if contact_person is not None:
            user.contact_person = contact_person
        user.updated_by = principal.id

        await cls._commit(db, storage, new_logo)
        if old_logo:
            await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, old_logo)
        logger.info("User %s updated by %s", user_id, principal.id)
        return await cls._load(db, user_id)

    @classmethod
    async def change_password(
        cls, db: AsyncSession, principal: Principal, old_password: str, new_password: str
    ) -> None:
        """Self-service change, requires the current password"""
        user = await cls._load(db, principal.id)
        if not user:
            raise NotFound("User not found")
        if not verify_password(old_password, user.password):
            raise ValidationError("Old password is incorrect")
        user.password = hash_password(_check_password(new_password))
        user.updated_by = principal.id
        await db.commit()
        logger.info("User %s changed their password", principal.id)

    @classmethod
    async def reset_password(
        cls, db: AsyncSession, principal: Principal, user_id: int, new_password: str
    ) -> None:
        """Admin reset, no old password needed"""
        user = await cls._load(db, user_id)
        if not user:
            raise NotFound("User not found")
        user.password = hash_password(_check_password(new_password))
        user.updated_by = principal.id
        await db.commit()
        logger.info("Password of user %s reset by %s", user_id, principal.id)

    @classmethod
    async def delete(cls, db: AsyncSession, storage: StorageClient, principal: Principal, user_id: int) -> None:
        """
        Soft delete

        The username gets a deletion suffix so it can be registered again, and
        the logo object is removed.
        """
        if user_id == principal.id:
            raise ValidationError("You cannot delete your own account")
        user = await cls._load(db, user_id)
        if not user:
            raise NotFound("User not found or already inactive")

        logo_key = user.filepath
        user.username = deleted_name(user.username, USERNAME_LENGTH)
        user.is_active = False
        user.filepath = None
        user.original_name = None
        user.updated_by = principal.id
        await db.commit()
        await discard_object(storage, settings.MINIO_BUCKET_DOCUMENT, logo_key)
        logger.info("User %s deleted by %s", user_id, principal.id)

    @classmethod
    async def logo(cls, db: AsyncSession, gateway: MediaGateway, principal: Principal, user_id: int):
        user = await cls.get(db, principal, user_id)
        if not user.filepath:
            raise NotFound("Logo not found")
        return await gateway.inline_image(settings.MINIO_BUCKET_DOCUMENT, user.filepath, user.original_name)
