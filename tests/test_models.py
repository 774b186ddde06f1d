from uuid import UUID

from sqlalchemy import Uuid

from models import Comment, Poll, UserModel


def test_every_table_gets_a_public_uuid():
    for model in (UserModel, Poll, Comment):
        column = model.__table__.c.uuid
        assert isinstance(column.type, Uuid)
        assert column.unique
        assert not column.nullable
        assert isinstance(column.default.arg(None), UUID)


async def test_uuid_is_assigned_on_insert(session_factory):
    async with session_factory() as session:
        user = UserModel(name="Alice", email="alice@example.com", hashed_password="x")
        session.add(user)
        await session.flush()
        assert isinstance(user.uuid, UUID)
