from typing import Optional, Sequence

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from core.results import PollResults, tally
from models import Poll, PollOption, Vote


class VoteCrud:

    def __init__(self):
        self.table = Vote

    async def create_vote(
        self,
        session: AsyncSession,
        poll_id: int,
        option_id: int,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Vote:
        vote = Vote(
            poll_id=poll_id,
            option_id=option_id,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        session.add(vote)
        await session.flush()
        return vote

    async def get_user_votes(self, session: AsyncSession, poll_id: int, user_id: int) -> Sequence[Vote]:
        stmt = select(Vote).where(
            Vote.user_id == user_id,
            Vote.poll_id == poll_id
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_user_voted_option_uuids(self, session: AsyncSession, poll_id: int, user_id: int):
        stmt = (
            select(PollOption.uuid)
            .join(Vote, Vote.option_id == PollOption.id)
            .where(Vote.poll_id == poll_id, Vote.user_id == user_id)
            .order_by(PollOption.order_index)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_voted_option_ids(self, session: AsyncSession, poll_id: int) -> Sequence[int]:
        stmt = select(Vote.option_id).where(Vote.poll_id == poll_id)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_poll_results(
        self,
        session: AsyncSession,
        poll: Poll,
        poll_options: Optional[Sequence[PollOption]] = None,
    ) -> PollResults:
        if poll_options is None:
            poll_options = poll.poll_options
        voted_option_ids = await self.get_voted_option_ids(session, poll.id)
        return tally(sorted(poll_options, key=lambda opt: opt.order_index), voted_option_ids)

    async def count_unique_voters(self, session: AsyncSession, poll_id: int) -> int:
        # Anonymous voters are told apart by IP address
        stmt = select(
            func.count(func.distinct(Vote.user_id)),
            func.count(func.distinct(case((Vote.user_id.is_(None), Vote.ip_address)))),
        ).where(Vote.poll_id == poll_id)
        result = await session.execute(stmt)
        known_voters, anonymous_voters = result.one()
        return known_voters + anonymous_voters


vote_crud = VoteCrud()
