"""Shared fixtures: in-memory SQLite database, blob storage and identity doubles, HTTP client."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_KEY", "test-service-key")

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from drive.config import Settings, get_settings
from drive.database import get_db
from drive.dependencies import get_blob_storage, get_identity_client
from drive.exceptions import StorageError
from drive.main import app
from drive.models import Base
from drive.services.blob_storage import BlobStorage
from drive.services.identity import AuthResult, IdentityError
from drive.services.tree_manager import TreeManager


class InMemoryBlobStorage(BlobStorage):
    """Blob store double that records calls and can be told to fail."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.remove_calls: list[list[str]] = []
        self.fail_put = False
        self.fail_remove = False

    async def put(self, key, data, content_type=None):
        if self.fail_put:
            raise StorageError("put failed")
        self.blobs[key] = data
        return key

    async def remove(self, keys):
        self.remove_calls.append(list(keys))
        if self.fail_remove:
            raise StorageError("remove failed")
        for key in keys:
            self.blobs.pop(key, None)


class FakeIdentityProvider:
    """Identity provider double holding users and issued tokens in memory."""

    def __init__(self):
        self.users: dict[str, tuple[str, str]] = {}
        self.tokens: dict[str, str] = {}
        self.require_confirmation = False
        self.drop_user_on_login = False

    def issue_token(self, user_id: str) -> str:
        token = f"token-{uuid.uuid4().hex}"
        self.tokens[token] = user_id
        return token

    async def sign_up(self, email, password):
        if email in self.users:
            raise IdentityError(422, "User already registered", "http://supabase.test/auth/v1/signup")
        user_id = str(uuid.uuid4())
        self.users[email] = (user_id, password)
        if self.require_confirmation:
            return AuthResult(user_id=user_id, email=email)
        return AuthResult(
            user_id=user_id, email=email,
            access_token=self.issue_token(user_id), refresh_token="refresh",
        )

    async def sign_in(self, email, password):
        user = self.users.get(email)
        if user is None or user[1] != password:
            raise IdentityError(400, "Invalid login credentials", "http://supabase.test/auth/v1/token")
        if self.drop_user_on_login:
            return AuthResult()
        return AuthResult(
            user_id=user[0], email=email,
            access_token=self.issue_token(user[0]), refresh_token="refresh",
        )

    async def verify_token(self, token):
        return self.tokens.get(token)


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
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return InMemoryBlobStorage()


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def tree(db_session, storage):
    return TreeManager(db_session, storage, max_upload_bytes=1024)


@pytest.fixture
def test_settings():
    return Settings(ENFORCE_TOKEN_OWNER=False, MAX_UPLOAD_BYTES=1024)


@pytest.fixture
async def client(session_factory, storage, identity, test_settings):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: storage
    app.dependency_overrides[get_identity_client] = lambda: identity
    app.dependency_overrides[get_settings] = lambda: test_settings

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
