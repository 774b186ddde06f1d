import logging
from uuid import UUID

from fastapi import HTTPException, APIRouter, status
from fastapi_pagination import Page
from fastapi_pagination.ext.sqlalchemy import apaginate

from core.base import as_utc
from core.depends import AsyncDBSession, AuthenticatedContext
from core.permissions import is_owner
from core.social_preview import open_graph_tags, poll_preview, twitter_card_tags
from schemas.poll_schema import (
    CreatePollRequestSchema,
    UpdatePollRequestSchema,
    PollDetailResponseSchema,
    PollListItemSchema,
    PollStatsSchema,
    SocialPreviewSchema,
)
from crud.poll_crud import poll_crud as PollCrud
from crud.poll_option_crud import poll_option_crud as PollOptionCrud
from crud.vote_crud import vote_crud as VoteCrud

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/polls",
)


def poll_fields(poll) -> dict:
    return {
        "title": poll.title,
        "description": poll.description,
        "is_public": poll.is_public,
        "allow_multiple_votes": poll.allow_multiple_votes,
        "allow_anonymous_votes": poll.allow_anonymous_votes,
        "expires_at": as_utc(poll.expires_at) if poll.expires_at else None,
    }


async def get_poll_or_404(session, poll_uuid: UUID):
    poll = await PollCrud.get_poll_by_uuid(session, poll_uuid)
    if not poll:
        raise HTTPException(status_code=404, detail="Poll not found")
    return poll


@router.post("", response_model=PollDetailResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_poll(
    session: AsyncDBSession,
    poll: CreatePollRequestSchema,
    context: AuthenticatedContext
):
    try:
        created_poll = await PollCrud.create_poll(
            session, {**poll_fields(poll), "created_by": context.user_id}
        )
        await session.commit()

        # Options are a separate write; if it fails the poll stays without options
        await PollOptionCrud.create_options(session, created_poll.id, poll.options)
        await session.commit()

        created_poll = await PollCrud.get_poll_by_uuid(session, created_poll.uuid)
        response_data = await PollCrud.build_poll_response_data(session, created_poll)
        logger.info(f"Poll {created_poll.uuid} created by user {context.user.uuid}")

        return PollDetailResponseSchema.model_validate(response_data)

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception("Error creating poll")
        raise HTTPException(status_code=500, detail="Failed to create poll")


@router.get("", response_model=Page[PollListItemSchema])
async def get_public_polls(
    session: AsyncDBSession,
):
    try:
        return await apaginate(session, PollCrud.public_polls_query())
    except Exception:
        logger.exception("Error fetching public polls")
        raise HTTPException(status_code=500, detail="Failed to fetch polls")


@router.get("/mine", response_model=Page[PollListItemSchema])
async def get_my_polls(
    session: AsyncDBSession,
    context: AuthenticatedContext
):
    try:
        return await apaginate(session, PollCrud.user_polls_query(context.user_id))
    except Exception:
        logger.exception("Error fetching user polls")
        raise HTTPException(status_code=500, detail="Failed to fetch polls")


@router.get("/{poll_uuid}", response_model=PollDetailResponseSchema)
async def get_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
):
    try:
        poll = await get_poll_or_404(session, poll_uuid)
        response_data = await PollCrud.build_poll_response_data(session, poll)
        return PollDetailResponseSchema.model_validate(response_data)

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to fetch poll")


@router.put("/{poll_uuid}", response_model=PollDetailResponseSchema)
async def edit_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
    poll: UpdatePollRequestSchema,
    context: AuthenticatedContext
):
    try:
        existing_poll = await get_poll_or_404(session, poll_uuid)

        if not is_owner(context.user, existing_poll.created_by):
            raise HTTPException(
                status_code=403,
                detail="You don't have permission to edit this poll"
            )

        await PollCrud.update_poll(session, existing_poll, poll_fields(poll))
        # Options are replaced wholesale; votes on the old ones go with them
        await PollOptionCrud.replace_options(session, existing_poll.id, poll.options)
        await session.commit()

        updated_poll = await PollCrud.get_poll_by_uuid(session, poll_uuid)
        response_data = await PollCrud.build_poll_response_data(session, updated_poll)
        logger.info(f"Poll {poll_uuid} updated with {len(poll.options)} options")

        return PollDetailResponseSchema.model_validate(response_data)

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error updating poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to update poll")


@router.delete("/{poll_uuid}")
async def delete_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
    context: AuthenticatedContext
):
    try:
        existing_poll = await get_poll_or_404(session, poll_uuid)

        if not is_owner(context.user, existing_poll.created_by):
            raise HTTPException(
                status_code=403,
                detail="You don't have permission to delete this poll"
            )

        await PollCrud.delete_poll(session, existing_poll.id)
        await session.commit()
        logger.info(f"Poll {poll_uuid} deleted")

        return {"message": "Poll deleted successfully", "uuid": poll_uuid}

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error deleting poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to delete poll")


@router.get("/{poll_uuid}/stats", response_model=PollStatsSchema)
async def get_poll_stats(
    session: AsyncDBSession,
    poll_uuid: UUID,
):
    try:
        poll = await get_poll_or_404(session, poll_uuid)
        return PollStatsSchema.model_validate(await PollCrud.get_poll_stats(session, poll))

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching stats for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to fetch poll stats")


@router.get("/{poll_uuid}/preview", response_model=SocialPreviewSchema)
async def get_poll_preview(
    session: AsyncDBSession,
    poll_uuid: UUID,
):
    try:
        poll = await get_poll_or_404(session, poll_uuid)
        results = await VoteCrud.get_poll_results(session, poll)

        preview = poll_preview(
            str(poll.uuid),
            poll.title,
            poll.description,
            option_count=len(poll.poll_options),
            vote_count=results.total_votes,
        )
        return SocialPreviewSchema(
            **preview,
            open_graph=open_graph_tags(preview),
            twitter=twitter_card_tags(preview),
        )

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error building preview for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to build poll preview")
