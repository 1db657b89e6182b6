"""
Shared test fixtures and utilities for the test suite.

This module provides common fixtures for database sessions, user creation,
workspace setup, an API client wired to the test database, and a fake
webhook receiver.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-test-suite-only")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APP_URL", "http://app.test")

from dataclasses import dataclass, field
from typing import AsyncGenerator, Callable, List, Optional
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import docspace.modules  # noqa: F401
from docspace.core.database import enable_sqlite_foreign_keys, get_db_session, get_session_factory
from docspace.core.models import Base
from docspace.core.security import create_access_token, generate_password_hash
from docspace.modules.auth.models import User
from docspace.modules.workspace.models import Workspace, WorkspaceMember, WorkspaceRole
from helpers import TEST_PASSWORD
from main import create_application


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create a test database engine.

    A file database lets background tasks open their own connections
    alongside the request session.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    enable_sqlite_foreign_keys(engine)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """Create a mock database session for unit tests."""
    session = AsyncMock(spec=AsyncSession)
    session.add = Mock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory creating users directly in the database."""
    hashed = generate_password_hash(TEST_PASSWORD)

    async def _make_user(email: str, full_name: Optional[str] = None) -> User:
        user = User(email=email.lower(), full_name=full_name, hashed_password=hashed, is_active=True)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_workspace(db_session: AsyncSession) -> Callable:
    """Factory creating a workspace owned by ``owner`` with optional extra members."""

    async def _make_workspace(owner: User, name: str = "Acme", members=None) -> Workspace:
        workspace = Workspace(name=name, created_by=owner.id)
        db_session.add(workspace)
        await db_session.flush()

        db_session.add(WorkspaceMember(workspace_id=workspace.id, user_id=owner.id, role=WorkspaceRole.OWNER))
        for user, role in (members or []):
            db_session.add(WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role))

        await db_session.commit()
        await db_session.refresh(workspace)
        return workspace

    return _make_workspace


@pytest_asyncio.fixture
async def owner(make_user) -> User:
    return await make_user("owner@example.com", "Olivia Owner")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin@example.com", "Adam Admin")


@pytest_asyncio.fixture
async def member(make_user) -> User:
    return await make_user("member@example.com", "Mia Member")


@pytest_asyncio.fixture
async def outsider(make_user) -> User:
    return await make_user("outsider@example.com", "Oscar Outsider")


@pytest_asyncio.fixture
async def workspace(make_workspace, owner, admin, member) -> Workspace:
    """Workspace "Acme" with one owner, one admin and one member."""
    return await make_workspace(
        owner,
        "Acme",
        members=[(admin, WorkspaceRole.ADMIN), (member, WorkspaceRole.MEMBER)],
    )


@dataclass
class WebhookReceiver:
    """Records outbound webhook requests and answers with a configurable status."""

    status_code: int = 200
    body: str = "ok"
    raise_timeout: bool = False
    requests: List[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_timeout:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def webhook_receiver() -> WebhookReceiver:
    return WebhookReceiver()


@pytest.fixture
def app(session_factory, webhook_receiver):
    """Application wired to the test database and the fake webhook receiver."""
    application = create_application()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db_session] = override_get_db_session
    application.dependency_overrides[get_session_factory] = lambda: session_factory
    application.state.webhook_transport = webhook_receiver.transport
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Anonymous API client."""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    await app.state.task_dispatcher.drain()


@pytest_asyncio.fixture
async def client_for(app):
    """Factory returning an API client authenticated as the given user via the session cookie."""
    clients: List[httpx.AsyncClient] = []

    def _client_for(user: User) -> httpx.AsyncClient:
        ac = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
            cookies={"auth_token": create_access_token(subject=str(user.id))},
        )
        clients.append(ac)
        return ac

    yield _client_for

    await app.state.task_dispatcher.drain()
    for ac in clients:
        await ac.aclose()


@pytest.fixture
def drain(app) -> Callable:
    """Wait for background work spawned by previous requests."""

    async def _drain() -> None:
        await app.state.task_dispatcher.drain()

    return _drain
