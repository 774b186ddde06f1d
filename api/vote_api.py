import logging
from uuid import UUID

from fastapi import HTTPException, APIRouter, status
from sqlalchemy.exc import IntegrityError

from api.poll_api import get_poll_or_404
from core.base import is_past
from core.depends import AsyncDBSession, AuthenticatedContext, OptionalContext, VoteRateLimiterDep
from crud.poll_crud import poll_crud as PollCrud, results_payload
from crud.poll_option_crud import poll_option_crud as PollOptionCrud
from crud.vote_crud import vote_crud as VoteCrud
from schemas.poll_schema import (
    MyVotesResponseSchema,
    PollResultsSchema,
    VoteRequestSchema,
    VoteResponseSchema,
)

logger = logging.getLogger(__name__)

ALREADY_VOTED = "You have already voted on this poll"

router = APIRouter(
    prefix="/polls",
)


async def build_results(session, poll) -> PollResultsSchema:
    options = sorted(poll.poll_options, key=lambda opt: opt.order_index)
    results = await VoteCrud.get_poll_results(session, poll, options)
    return PollResultsSchema(
        poll_uuid=poll.uuid,
        total_votes=results.total_votes,
        results=results_payload(results, options),
    )


@router.post("/{poll_uuid}/vote", response_model=VoteResponseSchema, status_code=status.HTTP_201_CREATED)
async def vote_on_poll(
    session: AsyncDBSession,
    poll_uuid: UUID,
    vote_data: VoteRequestSchema,
    context: OptionalContext,
    rate_limiter: VoteRateLimiterDep,
):
    """Record a vote. Anonymous callers are accepted only on polls that allow it."""
    try:
        existing_poll = await get_poll_or_404(session, poll_uuid)

        option_found = await PollOptionCrud.get_option_by_uuid_and_poll_id(
            session,
            vote_data.option_uuid,
            existing_poll.id
        )
        if not option_found:
            raise HTTPException(
                status_code=404,
                detail=f"Option {vote_data.option_uuid} not found for this poll"
            )

        if is_past(existing_poll.expires_at):
            raise HTTPException(status_code=410, detail="This poll has expired")

        if not context.is_authenticated and not existing_poll.allow_anonymous_votes:
            raise HTTPException(
                status_code=401,
                detail="You must be logged in to vote on this poll",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not await rate_limiter.allow(session, existing_poll, context.ip_address, context.user):
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded. Please wait before voting again."
            )

        if context.is_authenticated and not existing_poll.allow_multiple_votes:
            # Serializes a user's concurrent votes on the poll until commit
            await PollCrud.lock_poll(session, existing_poll.id)
            previous_votes = await VoteCrud.get_user_votes(session, existing_poll.id, context.user_id)
            if previous_votes:
                logger.warning(f"Repeat vote rejected on poll {poll_uuid}")
                raise HTTPException(status_code=409, detail=ALREADY_VOTED)

        try:
            vote = await VoteCrud.create_vote(
                session,
                existing_poll.id,
                option_found.id,
                user_id=context.user_id,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.warning(f"Duplicate vote rejected by constraint on poll {poll_uuid}")
            raise HTTPException(status_code=409, detail=ALREADY_VOTED)

        summary = await build_results(session, existing_poll)

        return VoteResponseSchema(
            message="Vote recorded successfully",
            poll_uuid=poll_uuid,
            option_uuid=vote_data.option_uuid,
            vote_uuid=vote.uuid,
            summary=summary,
        )

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error recording vote on poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to record vote")


@router.get("/{poll_uuid}/results", response_model=PollResultsSchema)
async def get_poll_results(
    session: AsyncDBSession,
    poll_uuid: UUID,
):
    try:
        existing_poll = await get_poll_or_404(session, poll_uuid)
        return await build_results(session, existing_poll)

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching results for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to fetch poll results")


@router.get("/{poll_uuid}/votes/me", response_model=MyVotesResponseSchema)
async def get_my_votes(
    session: AsyncDBSession,
    poll_uuid: UUID,
    context: AuthenticatedContext,
):
    try:
        existing_poll = await get_poll_or_404(session, poll_uuid)
        option_uuids = await VoteCrud.get_user_voted_option_uuids(session, existing_poll.id, context.user_id)
        return MyVotesResponseSchema(poll_uuid=poll_uuid, option_uuids=option_uuids)

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching votes on poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to fetch votes")
