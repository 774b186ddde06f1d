from core.auth import verify_password
from core.permissions import Role
from core.settings import settings
from crud.user_crud import user_crud


async def test_first_admin_is_created_once(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_NAME", "Root")
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", "rootpass")

    async with session_factory() as session:
        admin = await user_crud.ensure_first_admin(session)
        assert admin is not None
        assert admin.role == Role.ADMIN
        assert admin.name == "Root"
        assert verify_password("rootpass", admin.hashed_password)

    async with session_factory() as session:
        assert await user_crud.ensure_first_admin(session) is None
        stored = await user_crud.get_user_by_email(session, "root@example.com")
        assert stored.uuid == admin.uuid


async def test_first_admin_is_skipped_when_not_configured(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", None)
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", "rootpass")

    async with session_factory() as session:
        assert await user_crud.ensure_first_admin(session) is None
        assert await user_crud.get_user_by_email(session, "root@example.com") is None


async def test_first_admin_keeps_an_existing_account(client, make_user, session_factory, monkeypatch):
    await make_user(name="Root", email="root@example.com")
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", "different")

    async with session_factory() as session:
        assert await user_crud.ensure_first_admin(session) is None
        stored = await user_crud.get_user_by_email(session, "root@example.com")
        assert stored.role == Role.USER
