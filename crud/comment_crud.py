from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, delete, update, func, Select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Comment, CommentReaction, CommentReport


class CommentCrud:

    def __init__(self):
        self.table = Comment

    async def create_comment(
        self,
        session: AsyncSession,
        poll_id: int,
        user_id: int,
        content: str,
        parent_id: Optional[int] = None,
    ) -> Comment:
        comment = Comment(poll_id=poll_id, user_id=user_id, content=content, parent_id=parent_id)
        session.add(comment)
        await session.flush()
        return comment

    async def get_comment_by_uuid(self, session: AsyncSession, comment_uuid: UUID) -> Optional[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.uuid == comment_uuid)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_visible_comment(
        self,
        session: AsyncSession,
        comment_uuid: UUID,
        poll_id: int
    ) -> Optional[Comment]:
        stmt = select(Comment).where(
            Comment.uuid == comment_uuid,
            Comment.poll_id == poll_id,
            Comment.is_visible == True,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_visible_comments_for_poll(self, session: AsyncSession, poll_id: int) -> Sequence[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.poll_id == poll_id, Comment.is_visible == True)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_uuids_by_ids(self, session: AsyncSession, comment_ids) -> dict:
        comment_ids = [c for c in set(comment_ids) if c is not None]
        if not comment_ids:
            return {}
        result = await session.execute(select(Comment.id, Comment.uuid).where(Comment.id.in_(comment_ids)))
        return {row.id: row.uuid for row in result}

    async def update_content(self, session: AsyncSession, comment: Comment, content: str) -> Comment:
        comment.content = content
        await session.flush()
        return comment

    async def set_visibility(self, session: AsyncSession, comment: Comment, is_visible: bool) -> Comment:
        comment.is_visible = is_visible
        await session.flush()
        return comment

    async def collect_thread_ids(self, session: AsyncSession, comment_id: int) -> List[int]:
        """The comment id followed by the ids of all of its descendants."""
        thread_ids = [comment_id]
        frontier = [comment_id]
        while frontier:
            result = await session.execute(select(Comment.id).where(Comment.parent_id.in_(frontier)))
            frontier = [cid for cid in result.scalars().all() if cid not in thread_ids]
            thread_ids.extend(frontier)
        return thread_ids

    async def delete_comment(self, session: AsyncSession, comment_id: int) -> int:
        thread_ids = await self.collect_thread_ids(session, comment_id)
        await session.execute(delete(CommentReaction).where(CommentReaction.comment_id.in_(thread_ids)))
        await session.execute(delete(CommentReport).where(CommentReport.comment_id.in_(thread_ids)))
        # Deepest replies first
        for cid in reversed(thread_ids):
            await session.execute(delete(Comment).where(Comment.id == cid))
        return len(thread_ids)

    async def get_report(self, session: AsyncSession, comment_id: int, user_id: int) -> Optional[CommentReport]:
        stmt = select(CommentReport).where(
            CommentReport.comment_id == comment_id,
            CommentReport.user_id == user_id,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def create_report(self, session: AsyncSession, comment: Comment, user_id: int, reason: str) -> CommentReport:
        report = CommentReport(comment_id=comment.id, user_id=user_id, reason=reason)
        session.add(report)
        await session.execute(
            update(Comment)
            .where(Comment.id == comment.id)
            .values(report_count=Comment.report_count + 1)
        )
        await session.flush()
        return report

    def reported_comments_query(self) -> Select:
        return (
            select(Comment)
            .where(Comment.report_count > 0)
            .order_by(Comment.report_count.desc(), Comment.created_at.desc())
        )

    async def count_visible_since(self, session: AsyncSession, since: Optional[datetime] = None) -> int:
        stmt = select(func.count(Comment.id)).where(Comment.is_visible == True)
        if since is not None:
            stmt = stmt.where(Comment.created_at >= since)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def get_reaction(self, session: AsyncSession, comment_id: int, user_id: int) -> Optional[CommentReaction]:
        stmt = select(CommentReaction).where(
            CommentReaction.comment_id == comment_id,
            CommentReaction.user_id == user_id,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def toggle_reaction(
        self,
        session: AsyncSession,
        comment_id: int,
        user_id: int,
        reaction_type: str
    ) -> Optional[str]:
        """Same reaction again removes it, the other one replaces it.

        Returns the reaction left in place, if any.
        """
        existing = await self.get_reaction(session, comment_id, user_id)

        if existing is None:
            session.add(CommentReaction(comment_id=comment_id, user_id=user_id, reaction_type=reaction_type))
            await session.flush()
            return reaction_type

        if existing.reaction_type == reaction_type:
            await session.delete(existing)
            await session.flush()
            return None

        existing.reaction_type = reaction_type
        await session.flush()
        return reaction_type

    async def count_reactions(self, session: AsyncSession, comment_id: int) -> dict:
        stmt = (
            select(CommentReaction.reaction_type, func.count(CommentReaction.id))
            .where(CommentReaction.comment_id == comment_id)
            .group_by(CommentReaction.reaction_type)
        )
        result = await session.execute(stmt)
        counts = {"like": 0, "dislike": 0}
        counts.update({reaction_type: count for reaction_type, count in result.all()})
        return counts


comment_crud = CommentCrud()
