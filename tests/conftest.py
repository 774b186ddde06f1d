import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.async_engine import enable_sqlite_foreign_keys
from core.base import Base
from core.depends import get_session
from core.permissions import Role
from main import app
from models import UserModel


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, autocommit=False, expire_on_commit=False)


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def register(client, name="Alice", email="alice@example.com", password="secret123"):
    response = await client.post(
        "/auth/register", json={"name": name, "email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


async def login(client, email="alice@example.com", password="secret123"):
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def make_user(client):
    """Register a user and return ``(user, auth_headers)``."""

    async def _make_user(name="Alice", email="alice@example.com", password="secret123"):
        user = await register(client, name=name, email=email, password=password)
        headers = await login(client, email=email, password=password)
        return user, headers

    return _make_user


@pytest.fixture
def set_role(session_factory):
    async def _set_role(email: str, role: Role):
        async with session_factory() as session:
            await session.execute(update(UserModel).where(UserModel.email == email).values(role=role))
            await session.commit()

    return _set_role


@pytest.fixture
def create_poll(client):
    async def _create_poll(headers, **overrides):
        payload = {
            "title": "Favourite language?",
            "description": "Pick one",
            "options": ["Python", "Go", "Rust"],
        }
        payload.update(overrides)
        response = await client.post("/polls", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create_poll
