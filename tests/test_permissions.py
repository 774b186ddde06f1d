from types import SimpleNamespace

import pytest

from core.permissions import Action, Role, can, is_owner


@pytest.mark.parametrize("action", [Action.LIST_USERS, Action.UPDATE_USER_ROLE])
def test_user_management_is_admin_only(action):
    assert can(Role.ADMIN, action)
    assert not can(Role.MODERATOR, action)
    assert not can(Role.USER, action)


def test_moderators_can_moderate_comments():
    assert can(Role.MODERATOR, Action.MODERATE_COMMENT)
    assert can("admin", Action.DELETE_ANY_COMMENT)
    assert not can("user", Action.VIEW_REPORTED_COMMENTS)


def test_unknown_or_missing_role_is_denied():
    assert not can(None, Action.MODERATE_COMMENT)
    assert not can("superuser", Action.MODERATE_COMMENT)


def test_is_owner():
    user = SimpleNamespace(id=7)
    assert is_owner(user, 7)
    assert not is_owner(user, 8)
    assert not is_owner(None, 7)
