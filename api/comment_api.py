import logging
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, APIRouter, status
from sqlalchemy.exc import IntegrityError

from api.poll_api import get_poll_or_404
from core.comment_tree import CommentNode, build_comment_tree
from core.depends import AsyncDBSession, AuthenticatedContext
from core.permissions import Action, can, is_owner
from crud.comment_crud import comment_crud as CommentCrud
from crud.poll_crud import poll_crud as PollCrud
from schemas.comment_schema import (
    CommentSchema,
    CommentThreadSchema,
    CommentVisibilityRequestSchema,
    CreateCommentRequestSchema,
    ReactionRequestSchema,
    ReactionResponseSchema,
    ReportCommentRequestSchema,
    UpdateCommentRequestSchema,
)

logger = logging.getLogger(__name__)

ALREADY_REPORTED = "You have already reported this comment"

router = APIRouter()


def comment_payload(comment, poll_uuid: UUID, parent_uuid: Optional[UUID]) -> dict:
    return {
        "uuid": comment.uuid,
        "poll_uuid": poll_uuid,
        "parent_uuid": parent_uuid,
        "content": comment.content,
        "is_visible": comment.is_visible,
        "report_count": comment.report_count,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
        "author": {"uuid": comment.author.uuid, "name": comment.author.name},
    }


def thread_payload(nodes: List[CommentNode], poll_uuid: UUID, uuid_by_id: dict) -> list:
    return [
        {
            **comment_payload(node.comment, poll_uuid, uuid_by_id.get(node.comment.parent_id)),
            "replies": thread_payload(node.replies, poll_uuid, uuid_by_id),
        }
        for node in nodes
    ]


async def build_comment_response(session, comment) -> CommentSchema:
    poll_uuid = await PollCrud.get_uuid_by_id(session, comment.poll_id)
    uuid_by_id = await CommentCrud.get_uuids_by_ids(session, [comment.parent_id])
    return CommentSchema.model_validate(
        comment_payload(comment, poll_uuid, uuid_by_id.get(comment.parent_id))
    )


async def get_comment_or_404(session, comment_uuid: UUID):
    comment = await CommentCrud.get_comment_by_uuid(session, comment_uuid)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.get("/polls/{poll_uuid}/comments", response_model=List[CommentThreadSchema])
async def get_poll_comments(
    session: AsyncDBSession,
    poll_uuid: UUID,
):
    """Visible comments of a poll, replies nested under their parents."""
    try:
        poll = await get_poll_or_404(session, poll_uuid)
        comments = await CommentCrud.get_visible_comments_for_poll(session, poll.id)
        uuid_by_id = {c.id: c.uuid for c in comments}
        tree = build_comment_tree(comments)
        return [CommentThreadSchema.model_validate(node) for node in thread_payload(tree, poll.uuid, uuid_by_id)]

    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching comments for poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to get comments")


@router.post("/polls/{poll_uuid}/comments", response_model=CommentSchema, status_code=status.HTTP_201_CREATED)
async def create_comment(
    session: AsyncDBSession,
    poll_uuid: UUID,
    comment_data: CreateCommentRequestSchema,
    context: AuthenticatedContext,
):
    try:
        poll = await get_poll_or_404(session, poll_uuid)

        if not poll.is_public and not is_owner(context.user, poll.created_by):
            raise HTTPException(status_code=403, detail="You cannot comment on this poll")

        parent_id = None
        if comment_data.parent_uuid is not None:
            parent = await CommentCrud.get_visible_comment(session, comment_data.parent_uuid, poll.id)
            if not parent:
                raise HTTPException(status_code=404, detail="Parent comment not found")
            parent_id = parent.id

        comment = await CommentCrud.create_comment(
            session, poll.id, context.user_id, comment_data.content, parent_id=parent_id
        )
        await session.commit()

        comment = await CommentCrud.get_comment_by_uuid(session, comment.uuid)
        return CommentSchema.model_validate(
            comment_payload(comment, poll.uuid, comment_data.parent_uuid)
        )

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error creating comment on poll {poll_uuid}")
        raise HTTPException(status_code=500, detail="Failed to create comment")


@router.put("/comments/{comment_uuid}", response_model=CommentSchema)
async def update_comment(
    session: AsyncDBSession,
    comment_uuid: UUID,
    comment_data: UpdateCommentRequestSchema,
    context: AuthenticatedContext,
):
    try:
        comment = await get_comment_or_404(session, comment_uuid)

        if not is_owner(context.user, comment.user_id):
            raise HTTPException(status_code=403, detail="You can only edit your own comments")

        if not comment.is_visible:
            raise HTTPException(status_code=400, detail="Cannot edit hidden comment")

        await CommentCrud.update_content(session, comment, comment_data.content)
        await session.commit()

        comment = await CommentCrud.get_comment_by_uuid(session, comment_uuid)
        return await build_comment_response(session, comment)

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error updating comment {comment_uuid}")
        raise HTTPException(status_code=500, detail="Failed to update comment")


@router.delete("/comments/{comment_uuid}")
async def delete_comment(
    session: AsyncDBSession,
    comment_uuid: UUID,
    context: AuthenticatedContext,
):
    """Hard delete. Replies to the comment are removed with it."""
    try:
        comment = await get_comment_or_404(session, comment_uuid)

        if not is_owner(context.user, comment.user_id) and not can(context.role, Action.DELETE_ANY_COMMENT):
            raise HTTPException(status_code=403, detail="You can only delete your own comments")

        deleted = await CommentCrud.delete_comment(session, comment.id)
        await session.commit()
        logger.info(f"Comment {comment_uuid} deleted with {deleted - 1} replies")

        return {"message": "Comment deleted successfully", "uuid": comment_uuid}

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error deleting comment {comment_uuid}")
        raise HTTPException(status_code=500, detail="Failed to delete comment")


@router.patch("/comments/{comment_uuid}/visibility", response_model=CommentSchema)
async def update_comment_visibility(
    session: AsyncDBSession,
    comment_uuid: UUID,
    visibility: CommentVisibilityRequestSchema,
    context: AuthenticatedContext,
):
    try:
        if not can(context.role, Action.MODERATE_COMMENT):
            raise HTTPException(status_code=403, detail="Moderator access required")

        comment = await get_comment_or_404(session, comment_uuid)
        await CommentCrud.set_visibility(session, comment, visibility.is_visible)
        await session.commit()
        logger.info(f"Comment {comment_uuid} visibility set to {visibility.is_visible} by {context.user.uuid}")

        comment = await CommentCrud.get_comment_by_uuid(session, comment_uuid)
        return await build_comment_response(session, comment)

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error updating visibility of comment {comment_uuid}")
        raise HTTPException(status_code=500, detail="Failed to update comment visibility")


@router.post("/comments/{comment_uuid}/report", status_code=status.HTTP_201_CREATED)
async def report_comment(
    session: AsyncDBSession,
    comment_uuid: UUID,
    report_data: ReportCommentRequestSchema,
    context: AuthenticatedContext,
):
    try:
        comment = await get_comment_or_404(session, comment_uuid)

        existing_report = await CommentCrud.get_report(session, comment.id, context.user_id)
        if existing_report:
            raise HTTPException(status_code=409, detail=ALREADY_REPORTED)

        try:
            await CommentCrud.create_report(session, comment, context.user_id, report_data.reason)
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.warning(f"Duplicate report rejected by constraint on comment {comment_uuid}")
            raise HTTPException(status_code=409, detail=ALREADY_REPORTED)
        logger.info(f"Comment {comment_uuid} reported")

        comment = await CommentCrud.get_comment_by_uuid(session, comment_uuid)
        return {"message": "Comment reported", "uuid": comment_uuid, "report_count": comment.report_count}

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error reporting comment {comment_uuid}")
        raise HTTPException(status_code=500, detail="Failed to report comment")


@router.post("/comments/{comment_uuid}/reactions", response_model=ReactionResponseSchema)
async def toggle_reaction(
    session: AsyncDBSession,
    comment_uuid: UUID,
    reaction: ReactionRequestSchema,
    context: AuthenticatedContext,
):
    try:
        comment = await get_comment_or_404(session, comment_uuid)
        if not comment.is_visible:
            raise HTTPException(status_code=404, detail="Comment not found")

        current = await CommentCrud.toggle_reaction(session, comment.id, context.user_id, reaction.reaction_type)
        await session.commit()

        counts = await CommentCrud.count_reactions(session, comment.id)
        return ReactionResponseSchema(
            comment_uuid=comment_uuid,
            reaction_type=current,
            likes=counts["like"],
            dislikes=counts["dislike"],
        )

    except HTTPException:
        raise
    except Exception:
        await session.rollback()
        logger.exception(f"Error reacting to comment {comment_uuid}")
        raise HTTPException(status_code=500, detail="Failed to update reaction")
