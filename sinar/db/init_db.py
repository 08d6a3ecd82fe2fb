"""
Startup bootstrap: tables, reference roles, buckets and the first admin
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from sinar.core.config import settings
from sinar.db.database import Base
from sinar.integrations.storage_client import StorageClient, StorageException
from sinar.models import ADMIN_ROLE, USER_ROLE, Role, User
from sinar.utils.auth import hash_password

logger = logging.getLogger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def ensure_roles(db: AsyncSession) -> dict:
    """Create the admin and user roles when missing; returns {name: Role}"""
    roles = {}
    for name in (ADMIN_ROLE, USER_ROLE):
        role = (await db.execute(select(Role).where(Role.name == name))).scalar_one_or_none()
        if role is None:
            role = Role(name=name)
            db.add(role)
            logger.info("Created role %s", name)
        roles[name] = role
    await db.commit()
    return roles


async def ensure_admin(db: AsyncSession, admin_role: Role) -> None:
    if not (settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD):
        return
    existing = await db.execute(select(User.id).where(User.username == settings.ADMIN_USERNAME))
    if existing.first():
        return
    db.add(User(
        username=settings.ADMIN_USERNAME,
        password=hash_password(settings.ADMIN_PASSWORD),
        role_id=admin_role.id,
        is_active=True,
    ))
    await db.commit()
    logger.info("Created bootstrap admin %s", settings.ADMIN_USERNAME)


async def ensure_buckets(storage: StorageClient) -> None:
    for bucket in (settings.MINIO_BUCKET_DOCUMENT, settings.MINIO_BUCKET_REPORT):
        try:
            await storage.ensure_bucket(bucket)
        except StorageException:
            # the API still serves non-file routes without storage
            logger.exception("Could not ensure bucket %s", bucket)


async def init_db(engine: AsyncEngine, session_factory, storage: StorageClient) -> None:
    if settings.AUTO_CREATE_TABLES:
        await create_tables(engine)
    async with session_factory() as db:
        roles = await ensure_roles(db)
        await ensure_admin(db, roles[ADMIN_ROLE])
    await ensure_buckets(storage)
