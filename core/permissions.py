import enum
from typing import Any, Optional


class Role(str, enum.Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {Role.USER: 0, Role.MODERATOR: 1, Role.ADMIN: 2}


class Action(str, enum.Enum):
    LIST_USERS = "list_users"
    UPDATE_USER_ROLE = "update_user_role"
    MODERATE_COMMENT = "moderate_comment"
    DELETE_ANY_COMMENT = "delete_any_comment"
    VIEW_COMMENT_STATS = "view_comment_stats"
    VIEW_REPORTED_COMMENTS = "view_reported_comments"


# Lowest role allowed to perform each action
_REQUIRED_ROLE = {
    Action.LIST_USERS: Role.ADMIN,
    Action.UPDATE_USER_ROLE: Role.ADMIN,
    Action.MODERATE_COMMENT: Role.MODERATOR,
    Action.DELETE_ANY_COMMENT: Role.MODERATOR,
    Action.VIEW_COMMENT_STATS: Role.MODERATOR,
    Action.VIEW_REPORTED_COMMENTS: Role.MODERATOR,
}


def can(role: Optional[Role | str], action: Action) -> bool:
    """Return whether ``role`` may perform ``action`` on any user's data."""
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    return role.rank >= _REQUIRED_ROLE[action].rank


def is_owner(user: Any, owner_id: Optional[int]) -> bool:
    return user is not None and owner_id is not None and user.id == owner_id
