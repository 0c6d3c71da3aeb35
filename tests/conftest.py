# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures: in-memory SQLite database, fake clocks and an API client."""
import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("ENABLE_REALTIME", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from buildtrack.database import Base, get_db
from buildtrack.models import database as db_models
from buildtrack.services.realtime import RealtimeHub, RealtimePublisher, get_hub, get_publisher
from buildtrack.timer.registry import TimerRegistry, get_timer_registry


class FakeClock:
    """Monotonic seconds source advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWallClock:
    """Aware UTC datetime source advanced by hand."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite/aiosqlite need these hooks for SAVEPOINT to work
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture
def registry(clock, wall_clock):
    return TimerRegistry(clock=clock, wall_clock=wall_clock)


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def publisher(hub):
    return RealtimePublisher(hub=hub)


async def make_user(db: AsyncSession, username: str, handle: str = None) -> db_models.User:
    user = db_models.User(
        email=f"{username}@example.com",
        username=username,
        hashed_password="not-a-real-hash",
        handle=handle,
        name=username.title(),
    )
    db.add(user)
    await db.flush()
    return user


async def make_project(db: AsyncSession, owner: db_models.User, name: str = "Side project", **fields):
    project = db_models.Project(user_id=owner.id, name=name, **fields)
    db.add(project)
    await db.flush()
    return project


@pytest_asyncio.fixture
async def alice(db):
    user = await make_user(db, "alice", handle="alice")
    await db.commit()
    return user


@pytest_asyncio.fixture
async def bob(db):
    user = await make_user(db, "bob", handle="bob")
    await db.commit()
    return user


@pytest_asyncio.fixture
async def app_client(session_factory, hub, publisher, registry):
    """httpx client talking to the app in-process, bound to the test database."""
    from buildtrack.main import app
    from buildtrack.routers import feed, live, sessions

    for module in (feed, live, sessions):
        module.limiter.enabled = False

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_timer_registry] = lambda: registry

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def register(client: httpx.AsyncClient, username: str, handle: str = None) -> dict:
    """Register through the API and return bearer headers."""
    response = await client.post(
        "/api/auth/register",
        json={"email": f"{username}@example.com", "username": username, "password": "secret123"},
    )
    assert response.status_code == 201, response.text
    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
    if handle:
        response = await client.put("/api/profiles/me", json={"handle": handle}, headers=headers)
        assert response.status_code == 200, response.text
    return headers
