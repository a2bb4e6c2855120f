"""Thread reconstruction.

Turns the flat, time-ordered comments of one post into a nested tree:
``{comment_id: {...comment fields..., "children": {...} | None}}``.

Policy for malformed input:
- Orphans (parent not in the input) are dropped, not promoted to roots.
- A comment is placed at most once, so self-parents and cycles cannot loop.
- Nesting deeper than ``max_depth`` is cut off.
"""

from collections import defaultdict
from collections.abc import Iterable, Iterator
from typing import Any

import structlog

from .models import ROOT_PARENT_ID, Comment


logger = structlog.get_logger(__name__)

DEFAULT_MAX_DEPTH = 100

Thread = dict[int, dict[str, Any]]


def index_by_parent(comments: Iterable[Comment]) -> dict[int, list[Comment]]:
    """Group comments by parent_id in one pass, keeping input order."""
    children: dict[int, list[Comment]] = defaultdict(list)
    for comment in comments:
        children[comment.parent_id].append(comment)
    return children


def build_thread(
    comments: Iterable[Comment],
    parent_id: int = ROOT_PARENT_ID,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Thread:
    """Build the reply tree hanging from ``parent_id``.

    Args:
        comments: Comments of a single post, sorted by timestamp then parent_id
        parent_id: Parent whose descendants form the tree (0 for the whole post)
        max_depth: Maximum nesting level kept

    Returns:
        Mapping of comment id to the comment's dict; ``children`` holds the
        same kind of mapping, or None for leaves
    """
    comments = list(comments)
    children = index_by_parent(comments)
    placed: set[int] = set()
    truncated = 0

    def subtree(target: int, depth: int) -> Thread:
        nonlocal truncated
        level: Thread = {}
        for comment in children.get(target, ()):
            if comment.id is None or comment.id in placed:
                continue
            if depth >= max_depth:
                truncated += 1
                continue
            placed.add(comment.id)
            node = comment.to_dict()
            replies = subtree(comment.id, depth + 1)
            if replies:
                node["children"] = replies
            level[comment.id] = node
        return level

    thread = subtree(parent_id, 0)

    if truncated:
        logger.warning(
            "thread_depth_exceeded", max_depth=max_depth, truncated=truncated
        )
    unplaced = len(comments) - len(placed)
    if unplaced:
        logger.debug("thread_comments_unplaced", parent_id=parent_id, count=unplaced)

    return thread


def walk_thread(
    thread: Thread, depth: int = 0
) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield ``(depth, node)`` for every node, depth-first in thread order."""
    stack = [(depth, node) for node in reversed(thread.values())]
    while stack:
        level, node = stack.pop()
        yield level, node
        if node.get("children"):
            stack.extend(
                (level + 1, child) for child in reversed(node["children"].values())
            )
