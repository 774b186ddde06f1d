import logging
from urllib.parse import quote
from uuid import UUID

from fastapi import HTTPException, APIRouter, Response, status
from fastapi.responses import RedirectResponse

from api.poll_api import get_poll_or_404
from core.base import is_past
from core.depends import AsyncDBSession, AuthenticatedContext
from core.permissions import is_owner
from core.settings import settings
from core.share import is_well_formed_code, normalize_code, qr_png, share_url
from crud.poll_crud import poll_crud as PollCrud
from crud.share_crud import ShareCodeExhausted, share_crud as ShareCrud
from schemas.poll_schema import PollResponseSchema
from schemas.share_schema import (
    CreateShareRequestSchema,
    SharedPollResponseSchema,
    ShareResponseSchema,
    ShareStatsSchema,
    ShareValidationSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def share_payload(share, poll_uuid: UUID) -> ShareResponseSchema:
    return ShareResponseSchema(
        share_code=share.share_code,
        share_url=share_url(share.share_code),
        poll_uuid=poll_uuid,
        expires_at=share.expires_at,
        created_at=share.created_at,
    )


async def resolve_share(session, share_code: str):
    """Return the share for ``share_code`` if it still leads to a votable public poll."""
    share = None
    if is_well_formed_code(normalize_code(share_code)):
        share = await ShareCrud.get_share_by_code(session, share_code)
    if not share:
        raise HTTPException(status_code=404, detail="Share code not found")

    if is_past(share.expires_at):
        raise HTTPException(status_code=410, detail="Share code has expired")

    poll = share.poll
    if is_past(poll.expires_at):
        raise HTTPException(status_code=410, detail="This poll has expired")

    if not poll.is_public:
        raise HTTPException(status_code=403, detail="This poll is no longer public")

    return share


@router.post("/polls/{poll_uuid}/share", response_model=ShareResponseSchema)
async def create_share_code(
    session: AsyncDBSession,
    poll_uuid: UUID,
    share_data: CreateShareRequestSchema,
    context: AuthenticatedContext,
    response: Response,
):
    """Hand out the poll's current share code, minting one only when none is active."""
    try:
        poll = await get_poll_or_404(session, poll_uuid)

        if not is_owner(context.user, poll.created_by):
            raise HTTPException(status_code=403, detail="Unauthorized to share this poll")

        if not poll.is_public:
            raise HTTPException(status_code=400, detail="Only public polls can be shared")

        existing_share = await ShareCrud.get_active_share_for_poll(session, poll.id)
        if existing_share:
            response.status_code = status.HTTP_200_OK
            return share_payload(existing_share, poll.uuid)

        recent_shares = await ShareCrud.count_recent_shares_by_user(session, context.user_id)
        if recent_shares >= settings.SHARE_RATE_LIMIT_PER_HOUR:
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded. Please wait before creating more share codes."
            )

        share = await ShareCrud.create_share(session, poll.id, context.user_id, share_data.expires_at)
        await session.commit()
        logger.info(f"Share code {share.share_code} issued for poll {poll_uuid}")

        response.status_code = status.HTTP_201_CREATED
        return share_payload(share, poll.uuid)

    except HTTPException:
        raise
    except ShareCodeExhausted:
        await session.rollback()
        logger.exception(f"Share code space exhausted for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to generate share code")
    except Exception:
        await session.rollback()
        logger.exception(f"Error generating share code for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to generate share code")


@router.get("/polls/{poll_uuid}/share/stats", response_model=ShareStatsSchema)
async def get_share_stats(
    session: AsyncDBSession,
    poll_uuid: UUID,
    context: AuthenticatedContext,
):
    try:
        poll = await get_poll_or_404(session, poll_uuid)

        if not is_owner(context.user, poll.created_by):
            raise HTTPException(status_code=403, detail="Unauthorized to view share stats")

        shares = await ShareCrud.get_shares_for_poll(session, poll.id)
        return ShareStatsSchema(
            share_count=len(shares),
            last_shared=shares[0].created_at if shares else None,
        )

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching share stats for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to get share stats")


@router.get("/share/{share_code}")
async def follow_share_link(
    session: AsyncDBSession,
    share_code: str,
):
    """Redirect to the shared poll, or back to the poll list with the reason it failed."""
    base_url = settings.APP_BASE_URL.rstrip("/")
    try:
        share = await resolve_share(session, share_code)
    except HTTPException as e:
        return RedirectResponse(f"{base_url}/polls?error={quote(e.detail)}", status_code=307)
    except Exception:
        logger.exception(f"Error resolving share code {share_code!r}")
        return RedirectResponse(f"{base_url}/polls?error={quote('Invalid share link')}", status_code=307)

    return RedirectResponse(f"{base_url}/polls/{share.poll.uuid}", status_code=307)


@router.get("/share/{share_code}/poll", response_model=SharedPollResponseSchema)
async def get_poll_by_share_code(
    session: AsyncDBSession,
    share_code: str,
):
    try:
        share = await resolve_share(session, share_code)
        poll_data = await PollCrud.build_poll_response_data(session, share.poll, include_results=False)
        return SharedPollResponseSchema(
            share_code=share.share_code,
            poll=PollResponseSchema.model_validate(poll_data),
        )

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching poll for share code {share_code!r}")
        raise HTTPException(status_code=500, detail="Failed to get poll")


@router.get("/share/{share_code}/validate", response_model=ShareValidationSchema)
async def validate_share_code(
    session: AsyncDBSession,
    share_code: str,
):
    try:
        share = await resolve_share(session, share_code)
    except HTTPException:
        return ShareValidationSchema(is_valid=False)
    except Exception:
        logger.exception(f"Error validating share code {share_code!r}")
        raise HTTPException(status_code=500, detail="Failed to validate share code")

    return ShareValidationSchema(is_valid=True, poll_uuid=share.poll.uuid)


@router.get("/share/{share_code}/qr.png")
async def get_share_qr_code(
    session: AsyncDBSession,
    share_code: str,
):
    try:
        share = await resolve_share(session, share_code)
        data = qr_png(share_url(share.share_code))

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error generating QR code for share code {share_code!r}")
        raise HTTPException(status_code=500, detail="Failed to generate QR code")

    return Response(content=data, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.delete("/share/{share_code}")
async def delete_share_code(
    session: AsyncDBSession,
    share_code: str,
    context: AuthenticatedContext,
):
    try:
        share = await ShareCrud.get_share_by_code(session, share_code)
        if not share:
            raise HTTPException(status_code=404, detail="Share code not found")

        if not is_owner(context.user, share.created_by):
            raise HTTPException(status_code=403, detail="Unauthorized to delete this share code")

        deleted_code = share.share_code
        await ShareCrud.delete_share(session, share.id)
        await session.commit()
        logger.info(f"Share code {deleted_code} deleted")

        return {"message": "Share code deleted successfully", "share_code": deleted_code}

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error deleting share code {share_code!r}")
        raise HTTPException(status_code=500, detail="Failed to delete share code")
