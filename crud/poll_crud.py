from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select, delete, Select
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import is_past
from models import Comment, CommentReaction, CommentReport, Poll, PollOption, PollShare, UserModel, Vote
from schemas.poll_schema import PollOptionSchema


class PollCrud:
    def __init__(self):
        self.table = Poll

    async def create_poll(self, session: AsyncSession, poll_data: dict) -> Poll:
        poll = Poll(**poll_data)
        session.add(poll)
        await session.flush()
        return poll

    async def get_poll_by_uuid(self, session: AsyncSession, poll_uuid: UUID) -> Optional[Poll]:
        stmt = (
            select(Poll)
            .where(Poll.uuid == poll_uuid)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    def public_polls_query(self) -> Select:
        return select(Poll).where(Poll.is_public == True).order_by(Poll.created_at.desc(), Poll.id.desc())

    def user_polls_query(self, user_id: int) -> Select:
        return select(Poll).where(Poll.created_by == user_id).order_by(Poll.created_at.desc(), Poll.id.desc())

    async def update_poll(self, session: AsyncSession, poll: Poll, poll_data: dict) -> Poll:
        for key, value in poll_data.items():
            setattr(poll, key, value)
        await session.flush()
        return poll

    async def delete_poll(self, session: AsyncSession, poll_id: int) -> None:
        """Delete a poll together with everything hanging off it."""
        comment_ids = select(Comment.id).where(Comment.poll_id == poll_id)
        await session.execute(delete(CommentReaction).where(CommentReaction.comment_id.in_(comment_ids)))
        await session.execute(delete(CommentReport).where(CommentReport.comment_id.in_(comment_ids)))
        # Replies first so self-referencing rows never dangle
        await session.execute(
            delete(Comment).where(Comment.poll_id == poll_id, Comment.parent_id.is_not(None))
        )
        await session.execute(delete(Comment).where(Comment.poll_id == poll_id))
        await session.execute(delete(PollShare).where(PollShare.poll_id == poll_id))
        await session.execute(delete(Vote).where(Vote.poll_id == poll_id))
        await session.execute(delete(PollOption).where(PollOption.poll_id == poll_id))
        await session.execute(delete(Poll).where(Poll.id == poll_id))

    def lock_poll_query(self, poll_id: int) -> Select:
        return select(Poll.id).where(Poll.id == poll_id).with_for_update()

    async def lock_poll(self, session: AsyncSession, poll_id: int) -> None:
        """Hold the poll row until the transaction ends. No-op on SQLite."""
        await session.execute(self.lock_poll_query(poll_id))

    async def get_uuid_by_id(self, session: AsyncSession, poll_id: int) -> Optional[UUID]:
        result = await session.execute(select(Poll.uuid).where(Poll.id == poll_id))
        return result.scalars().first()

    async def get_creator_uuid(self, session: AsyncSession, created_by: int) -> Optional[UUID]:
        creator_result = await session.execute(
            select(UserModel.uuid).where(UserModel.id == created_by)
        )
        return creator_result.scalars().first()

    async def get_poll_stats(self, session: AsyncSession, poll: Poll) -> Dict[str, Any]:
        """Same columns as the ``poll_stats`` view."""
        from crud.vote_crud import vote_crud as VoteCrud

        voted_option_ids = await VoteCrud.get_voted_option_ids(session, poll.id)
        return {
            "poll_uuid": poll.uuid,
            "title": poll.title,
            "option_count": len(poll.poll_options),
            "total_votes": len(voted_option_ids),
            "unique_voters": await VoteCrud.count_unique_voters(session, poll.id),
            "is_expired": is_past(poll.expires_at),
        }

    async def build_poll_response_data(
        self,
        session: AsyncSession,
        poll: Poll,
        include_results: bool = True,
    ) -> Dict[str, Any]:
        from crud.vote_crud import vote_crud as VoteCrud

        sorted_options = sorted(poll.poll_options, key=lambda opt: opt.order_index)
        response_dict = {
            "uuid": poll.uuid,
            "title": poll.title,
            "description": poll.description,
            "is_public": poll.is_public,
            "allow_multiple_votes": poll.allow_multiple_votes,
            "allow_anonymous_votes": poll.allow_anonymous_votes,
            "expires_at": poll.expires_at,
            "is_expired": is_past(poll.expires_at),
            "created_at": poll.created_at,
            "updated_at": poll.updated_at,
            "created_by_uuid": await self.get_creator_uuid(session, poll.created_by),
            "options": [PollOptionSchema.model_validate(opt).model_dump() for opt in sorted_options],
        }

        if include_results:
            results = await VoteCrud.get_poll_results(session, poll, sorted_options)
            response_dict["total_votes"] = results.total_votes
            response_dict["results"] = results_payload(results, sorted_options)

        return response_dict


def results_payload(results, options) -> list:
    uuid_by_id = {opt.id: opt.uuid for opt in options}
    return [
        {
            "option_uuid": uuid_by_id[row.option_id],
            "option_text": row.option_text,
            "vote_count": row.vote_count,
            "percentage": row.percentage,
        }
        for row in results.options
    ]


poll_crud = PollCrud()
