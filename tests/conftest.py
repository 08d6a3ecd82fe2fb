"""
Shared fixtures: in-memory SQLite, fake object storage, in-process cache
"""
import io
import os
import zipfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BASE_URL"] = "http://testserver"
os.environ.pop("REDIS_URL", None)

from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from sinar.core.cache import MemoryStore, get_cache
from sinar.core.config import settings
from sinar.db.database import Base, get_db
from sinar.db.init_db import ensure_roles
from sinar.integrations.storage_client import ObjectInfo, StorageClient, StorageException, get_storage
from sinar.models import ADMIN_ROLE, USER_ROLE, Document, DocumentReport, Kategori, ReportType, User
from sinar.services.scope import Principal
from sinar.utils.auth import create_access_token, hash_password

DEFAULT_PASSWORD = "secret123"


class FakeStorage(StorageClient):
    """Dict-backed stand-in for the MinIO client"""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self.buckets = set()
        self.removed = []
        self.fail_uploads = False

    def put(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        self.objects[(bucket, key)] = (data, content_type)

    def has(self, bucket: str, key: str) -> bool:
        return (bucket, key) in self.objects

    def _get(self, bucket: str, key: str) -> Tuple[bytes, str]:
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise StorageException(f"NoSuchKey: {bucket}/{key}")

    async def ensure_bucket(self, bucket: str) -> None:
        self.buckets.add(bucket)

    async def put_object(self, bucket, object_name, data, length, content_type="application/octet-stream"):
        if self.fail_uploads:
            raise StorageException("connection refused")
        self.put(bucket, object_name, data.read(length), content_type)
        return object_name

    async def remove_object(self, bucket, object_name):
        self._get(bucket, object_name)
        del self.objects[(bucket, object_name)]
        self.removed.append((bucket, object_name))

    async def stat_object(self, bucket, object_name):
        data, content_type = self._get(bucket, object_name)
        return ObjectInfo(size=len(data), content_type=content_type)

    async def open_object(self, bucket, object_name, offset=0, length=None) -> Iterator[bytes]:
        data, _ = self._get(bucket, object_name)
        end = len(data) if length is None else offset + length
        return iter([data[offset:end]])

    async def read_object(self, bucket, object_name) -> bytes:
        return self._get(bucket, object_name)[0]


class Factory:
    """Row builders that commit immediately"""

    def __init__(self, db: AsyncSession, storage: FakeStorage):
        self.db = db
        self.storage = storage
        self._roles = None

    async def roles(self):
        if self._roles is None:
            self._roles = await ensure_roles(self.db)
        return self._roles

    async def category(self, name: str, is_active: bool = True) -> Kategori:
        kategori = Kategori(name=name, is_active=is_active)
        self.db.add(kategori)
        await self.db.commit()
        return kategori

    async def user(
        self,
        username: str,
        role: str = USER_ROLE,
        category: Optional[Kategori] = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        roles = await self.roles()
        user = User(
            username=username,
            password=hash_password(password),
            role_id=roles[role].id,
            category_id=category.id if category else None,
            is_active=is_active,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def document(
        self,
        categories,
        original_name: str = "surat.pdf",
        data: bytes = b"%PDF-1.4 sinar test document",
        title: str = "Surat Edaran",
        remark: Optional[str] = None,
        is_downloaded: bool = False,
        is_active: bool = True,
        uploaded_at: Optional[datetime] = None,
    ) -> Document:
        ext = os.path.splitext(original_name)[1]
        key = f"seed-{len(self.storage.objects)}{ext}"
        self.storage.put(settings.MINIO_BUCKET_DOCUMENT, key, data)
        document = Document(
            title=title,
            remark=remark,
            filename=key,
            original_name=original_name,
            is_downloaded=is_downloaded,
            is_active=is_active,
        )
        if uploaded_at is not None:
            document.uploaded_at = uploaded_at
        document.categories = list(categories)
        self.db.add(document)
        await self.db.commit()
        return document

    async def report(
        self,
        document: Document,
        user: User,
        report_type: ReportType = ReportType.TEXT,
        content: str = "Laporan diterima",
        data: Optional[bytes] = None,
        original_name: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> DocumentReport:
        if data is not None:
            self.storage.put(settings.MINIO_BUCKET_REPORT, content, data)
        report = DocumentReport(
            type=report_type,
            content=content,
            original_name=original_name,
            document_id=document.id,
            user_id=user.id,
            is_downloaded=False,
        )
        if created_at is not None:
            report.created_at = created_at
            report.updated_at = created_at
        self.db.add(report)
        await self.db.commit()
        return report


def token_for(user: User, role: str) -> str:
    return create_access_token({"id": user.id, "role": role, "category_id": user.category_id})


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def principal_for(user: User, role: str) -> Principal:
    return Principal(id=user.id, role=role, category_id=user.category_id, username=user.username)


def make_docx(text: str) -> bytes:
    """Smallest .docx mammoth can read"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as docx:
        docx.writestr(
            "[Content_Types].xml",
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
            '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
            '<Default Extension="xml" ContentType="application/xml"/>'
            '<Override PartName="/word/document.xml" '
            'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
            "</Types>",
        )
        docx.writestr(
            "_rels/.rels",
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
            '<Relationship Id="rId1" '
            'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
            'Target="word/document.xml"/>'
            "</Relationships>",
        )
        docx.writestr(
            "word/_rels/document.xml.rels",
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"/>',
        )
        docx.writestr(
            "word/document.xml",
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
            f"<w:body><w:p><w:r><w:t>{text}</w:t></w:r></w:p></w:body>"
            "</w:document>",
        )
    return buffer.getvalue()


async def body_of(response) -> bytes:
    """Drain a StreamingResponse built outside the ASGI stack"""
    chunks = []
    async for chunk in response.body_iterator:
        chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode())
    return b"".join(chunks)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def cache():
    return MemoryStore()


@pytest.fixture
def factory(db, storage):
    return Factory(db, storage)


@pytest.fixture
async def client(session_factory, storage, cache):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_cache] = lambda: cache
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def kominfo(factory):
    return await factory.category("Kominfo")


@pytest.fixture
async def kemenkes(factory):
    return await factory.category("Kemenkes")


@pytest.fixture
async def admin(factory):
    return await factory.user("admin", role=ADMIN_ROLE)


@pytest.fixture
async def user_a(factory, kominfo):
    return await factory.user("komdigi", category=kominfo)


@pytest.fixture
async def user_b(factory, kemenkes):
    return await factory.user("sehat", category=kemenkes)


@pytest.fixture
def admin_headers(admin):
    return bearer(token_for(admin, ADMIN_ROLE))


@pytest.fixture
def user_a_headers(user_a):
    return bearer(token_for(user_a, USER_ROLE))


@pytest.fixture
def user_b_headers(user_b):
    return bearer(token_for(user_b, USER_ROLE))
