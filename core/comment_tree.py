"""Assembly of flat comment rows into reply trees."""
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, List


@dataclass
class CommentNode:
    comment: Any
    replies: List["CommentNode"] = field(default_factory=list)


def build_comment_tree(comments: Iterable[Any]) -> List[CommentNode]:
    """Nest ``comments`` under their parents.

    Each comment needs ``id`` and ``parent_id``. Input order is kept at every
    level, so pass the rows sorted by creation time. Replies whose parent is
    not in the input (hidden or deleted) are dropped along with their own
    replies.
    """
    comments = list(comments)
    nodes: dict[Hashable, CommentNode] = {c.id: CommentNode(comment=c) for c in comments}
    roots: List[CommentNode] = []

    for c in comments:
        node = nodes[c.id]
        if c.parent_id is None:
            roots.append(node)
            continue
        parent = nodes.get(c.parent_id)
        if parent is not None and parent is not node:
            parent.replies.append(node)

    return roots
