from types import SimpleNamespace

from core.comment_tree import build_comment_tree


def row(comment_id, parent_id=None):
    return SimpleNamespace(id=comment_id, parent_id=parent_id)


def test_replies_nest_under_parents_in_input_order():
    tree = build_comment_tree([row(1), row(2), row(3, 1), row(4, 3), row(5, 1)])

    assert [n.comment.id for n in tree] == [1, 2]
    assert [n.comment.id for n in tree[0].replies] == [3, 5]
    assert [n.comment.id for n in tree[0].replies[0].replies] == [4]
    assert tree[1].replies == []


def test_orphaned_replies_are_dropped():
    tree = build_comment_tree([row(1), row(3, 2), row(4, 3)])

    assert [n.comment.id for n in tree] == [1]
    assert tree[0].replies == []
