from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import PollOption, Vote


class PollOptionCrud:
    def __init__(self):
        self.table = PollOption

    async def create_options(self, session: AsyncSession, poll_id: int, texts: List[str]) -> List[PollOption]:
        options = [
            PollOption(poll_id=poll_id, text=text, order_index=index)
            for index, text in enumerate(texts)
        ]
        session.add_all(options)
        await session.flush()
        return options

    async def get_option_by_uuid_and_poll_id(
        self,
        session: AsyncSession,
        option_uuid: UUID,
        poll_id: int
    ) -> Optional[PollOption]:
        stmt = (
            select(PollOption)
            .where(PollOption.uuid == option_uuid)
            .where(PollOption.poll_id == poll_id)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def delete_options_by_poll_id(self, session: AsyncSession, poll_id: int) -> int:
        option_ids = select(PollOption.id).where(PollOption.poll_id == poll_id)
        await session.execute(delete(Vote).where(Vote.option_id.in_(option_ids)))
        result = await session.execute(delete(PollOption).where(PollOption.poll_id == poll_id))
        return result.rowcount

    async def replace_options(self, session: AsyncSession, poll_id: int, texts: List[str]) -> List[PollOption]:
        """Drop every option of the poll (with its votes) and insert ``texts`` in order."""
        await self.delete_options_by_poll_id(session, poll_id)
        return await self.create_options(session, poll_id, texts)


poll_option_crud = PollOptionCrud()
