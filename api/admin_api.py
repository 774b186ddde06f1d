import logging
from datetime import datetime, time, timedelta

from fastapi import HTTPException, APIRouter, status
from fastapi_pagination import Page
from fastapi_pagination.ext.sqlalchemy import apaginate
from sqlalchemy.orm import aliased

from api.comment_api import comment_payload
from core.base import utcnow
from core.depends import AsyncDBSession, AuthenticatedContext, RequestContext
from core.permissions import Action, can
from crud.comment_crud import comment_crud as CommentCrud
from crud.user_crud import user_crud as UserCrud
from models import Comment, Poll
from schemas.comment_schema import CommentSchema, CommentStatsSchema
from schemas.user_schema import UpdateUserRoleRequest, UpdateUserRoleResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"]
)


def require(context: RequestContext, action: Action, detail: str) -> None:
    if not can(context.role, action):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@router.get("/users", response_model=Page[UserResponse])
async def list_users(
    session: AsyncDBSession,
    context: AuthenticatedContext,
):
    require(context, Action.LIST_USERS, "Admin access required")
    try:
        return await apaginate(session, UserCrud.all_users_query())
    except Exception:
        logger.exception("Error fetching users")
        raise HTTPException(status_code=500, detail="Failed to fetch users")


@router.patch("/users", response_model=UpdateUserRoleResponse)
async def update_user_role(
    session: AsyncDBSession,
    update_data: UpdateUserRoleRequest,
    context: AuthenticatedContext,
):
    require(context, Action.UPDATE_USER_ROLE, "Admin access required")
    try:
        if update_data.user_uuid == context.user.uuid:
            raise HTTPException(status_code=400, detail="Cannot change your own role")

        user = await UserCrud.get_user_by_uuid(session, update_data.user_uuid)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        previous_role = user.role
        await UserCrud.update_role(session, user, update_data.role)
        await session.commit()
        logger.info(
            f"User {user.uuid} role changed from {previous_role.value} to {update_data.role.value} "
            f"by {context.user.uuid}"
        )

        return UpdateUserRoleResponse(user=UserResponse.model_validate(user))

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error updating role of user {update_data.user_uuid}")
        raise HTTPException(status_code=500, detail="Failed to update user role")


@router.get("/comments/stats", response_model=CommentStatsSchema)
async def get_comment_stats(
    session: AsyncDBSession,
    context: AuthenticatedContext,
):
    require(context, Action.VIEW_COMMENT_STATS, "Moderator access required")
    try:
        now = utcnow()
        today = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        week_ago = today - timedelta(days=7)

        return CommentStatsSchema(
            total_comments=await CommentCrud.count_visible_since(session),
            comments_today=await CommentCrud.count_visible_since(session, today),
            comments_this_week=await CommentCrud.count_visible_since(session, week_ago),
        )

    except Exception:
        logger.exception("Error fetching comment stats")
        raise HTTPException(status_code=500, detail="Failed to get comment statistics")


@router.get("/comments/reported", response_model=Page[CommentSchema])
async def get_reported_comments(
    session: AsyncDBSession,
    context: AuthenticatedContext,
):
    """Moderation queue: reported comments, most reported first, hidden ones included."""
    require(context, Action.VIEW_REPORTED_COMMENTS, "Moderator access required")
    parent = aliased(Comment)
    query = (
        CommentCrud.reported_comments_query()
        .add_columns(Poll.uuid.label("poll_uuid"), parent.uuid.label("parent_uuid"))
        .join(Poll, Poll.id == Comment.poll_id)
        .outerjoin(parent, parent.id == Comment.parent_id)
    )
    try:
        return await apaginate(
            session,
            query,
            transformer=lambda rows: [
                CommentSchema.model_validate(comment_payload(row[0], row[1], row[2])) for row in rows
            ],
        )
    except Exception:
        logger.exception("Error fetching reported comments")
        raise HTTPException(status_code=500, detail="Failed to fetch reported comments")
