import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import as_utc, utcnow
from core.settings import settings
from core.share import generate_code, normalize_code
from models import PollShare

logger = logging.getLogger(__name__)


class ShareCodeExhausted(Exception):
    """No unused share code could be drawn within the attempt budget."""


class ShareCrud:

    def __init__(self):
        self.table = PollShare

    async def get_share_by_code(self, session: AsyncSession, share_code: str) -> Optional[PollShare]:
        stmt = select(PollShare).where(PollShare.share_code == normalize_code(share_code))
        result = await session.execute(stmt)
        return result.scalars().first()

    async def code_exists(self, session: AsyncSession, share_code: str) -> bool:
        stmt = select(PollShare.id).where(PollShare.share_code == share_code).limit(1)
        result = await session.execute(stmt)
        return result.first() is not None

    async def get_active_share_for_poll(self, session: AsyncSession, poll_id: int) -> Optional[PollShare]:
        """Most recent share of the poll that has not expired."""
        stmt = (
            select(PollShare)
            .where(PollShare.poll_id == poll_id)
            .where((PollShare.expires_at.is_(None)) | (PollShare.expires_at > utcnow()))
            .order_by(PollShare.created_at.desc(), PollShare.id.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def count_recent_shares_by_user(self, session: AsyncSession, user_id: int, hours: int = 1) -> int:
        since = utcnow() - timedelta(hours=hours)
        stmt = select(func.count(PollShare.id)).where(
            PollShare.created_by == user_id,
            PollShare.created_at >= since,
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    async def generate_unique_code(self, session: AsyncSession) -> str:
        for attempt in range(settings.SHARE_CODE_MAX_ATTEMPTS):
            code = generate_code()
            if not await self.code_exists(session, code):
                return code
            logger.info(f"Share code collision on attempt {attempt + 1}")
        raise ShareCodeExhausted(
            f"Unable to generate unique share code after {settings.SHARE_CODE_MAX_ATTEMPTS} attempts"
        )

    async def create_share(
        self,
        session: AsyncSession,
        poll_id: int,
        user_id: int,
        expires_at: Optional[datetime] = None,
    ) -> PollShare:
        code = await self.generate_unique_code(session)
        share = PollShare(
            poll_id=poll_id,
            share_code=code,
            created_by=user_id,
            expires_at=as_utc(expires_at) if expires_at else None,
        )
        session.add(share)
        await session.flush()
        return share

    async def get_shares_for_poll(self, session: AsyncSession, poll_id: int) -> Sequence[PollShare]:
        stmt = (
            select(PollShare)
            .where(PollShare.poll_id == poll_id)
            .order_by(PollShare.created_at.desc(), PollShare.id.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def delete_share(self, session: AsyncSession, share_id: int) -> None:
        await session.execute(delete(PollShare).where(PollShare.id == share_id))


share_crud = ShareCrud()
