import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import utcnow
from models import Poll, UserModel, Vote

logger = logging.getLogger(__name__)


class VoteRateLimiter:
    """Decides whether a voter may cast another vote on a poll right now."""

    async def allow(
        self,
        session: AsyncSession,
        poll: Poll,
        ip_address: str,
        user: Optional[UserModel] = None,
    ) -> bool:
        raise NotImplementedError


class ProcedureRateLimiter(VoteRateLimiter):
    """Delegates to a stored procedure shipped with the PostgreSQL schema."""

    def __init__(self, procedure_name: str = "check_vote_rate_limit"):
        self.procedure_name = procedure_name

    async def allow(self, session, poll, ip_address, user=None) -> bool:
        procedure = getattr(func, self.procedure_name)
        stmt = select(procedure(poll.uuid, ip_address, user.uuid if user else None))
        result = await session.execute(stmt)
        return bool(result.scalar())


class WindowRateLimiter(VoteRateLimiter):
    """Counts the voter's recent votes on the poll within a sliding window."""

    def __init__(self, max_votes: int, window_seconds: int):
        self.max_votes = max_votes
        self.window_seconds = window_seconds

    async def allow(self, session, poll, ip_address, user=None) -> bool:
        since = utcnow() - timedelta(seconds=self.window_seconds)
        stmt = select(func.count(Vote.id)).where(
            Vote.poll_id == poll.id,
            Vote.created_at >= since,
        )
        if user is not None:
            stmt = stmt.where(Vote.user_id == user.id)
        else:
            stmt = stmt.where(Vote.ip_address == ip_address)

        recent_votes = (await session.execute(stmt)).scalar_one()
        if recent_votes >= self.max_votes:
            logger.warning(
                f"Vote rate limit hit on poll {poll.uuid}: {recent_votes} votes in {self.window_seconds}s"
            )
            return False
        return True
