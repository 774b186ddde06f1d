import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, Select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_password_hash
from core.permissions import Role
from core.settings import settings
from models import UserModel

logger = logging.getLogger(__name__)


class UserCrud:

    def __init__(self):
        self.table = UserModel

    async def create_user(self, session: AsyncSession, user_data: dict, role: Role = Role.USER) -> UserModel:
        user_data = dict(user_data)
        user_data["hashed_password"] = get_password_hash(user_data.pop("password"))
        user = UserModel(**user_data, role=role)
        session.add(user)
        await session.flush()
        return user

    async def get_user_by_email(self, session: AsyncSession, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == email)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_user_by_uuid(self, session: AsyncSession, user_uuid: UUID) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.uuid == user_uuid)
        result = await session.execute(stmt)
        return result.scalars().first()

    def all_users_query(self) -> Select:
        return select(UserModel).order_by(UserModel.created_at.desc(), UserModel.id.desc())

    async def update_role(self, session: AsyncSession, user: UserModel, role: Role) -> UserModel:
        user.role = role
        await session.flush()
        return user

    async def ensure_first_admin(self, session: AsyncSession) -> Optional[UserModel]:
        """Create the configured bootstrap admin when it does not exist yet."""
        if not settings.FIRST_ADMIN_EMAIL or not settings.FIRST_ADMIN_PASSWORD:
            return None

        existing = await self.get_user_by_email(session, settings.FIRST_ADMIN_EMAIL)
        if existing:
            logger.info("Bootstrap admin already present, skipping creation")
            return None

        admin = await self.create_user(
            session,
            {
                "name": settings.FIRST_ADMIN_NAME,
                "email": settings.FIRST_ADMIN_EMAIL,
                "password": settings.FIRST_ADMIN_PASSWORD,
            },
            role=Role.ADMIN,
        )
        await session.commit()
        logger.info(f"Bootstrap admin created: {admin.email}")
        return admin


user_crud = UserCrud()
