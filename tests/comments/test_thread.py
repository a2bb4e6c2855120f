"""Tests for thread reconstruction."""

from commentman.comments.models import Comment
from commentman.comments.thread import build_thread, index_by_parent, walk_thread


def node(comment_id: int, parent_id: int = 0, **kwargs) -> Comment:
    """Build a persisted-looking comment."""
    return Comment(
        id=comment_id,
        parent_id=parent_id,
        post_id=2,
        message=f"message {comment_id}",
        **kwargs,
    )


class TestBuildThread:
    """Tests for build_thread."""

    def test_empty_input(self) -> None:
        """No comments, no thread."""
        assert build_thread([]) == {}

    def test_reply_nested_under_parent(self) -> None:
        """A reply appears in its parent's children, keyed by id."""
        first, reply = node(1), node(2, parent_id=1)

        thread = build_thread([first, reply])

        assert list(thread) == [1]
        assert thread[1]["children"] == {2: reply.to_dict()}

    def test_chain_is_three_levels_deep(self) -> None:
        """A -> B -> C gives a three-level tree."""
        thread = build_thread([node(1), node(2, parent_id=1), node(3, parent_id=2)])

        level_b = thread[1]["children"]
        level_c = level_b[2]["children"]
        assert list(level_b) == [2]
        assert list(level_c) == [3]
        assert level_c[3]["children"] is None

    def test_leaves_keep_empty_children_slot(self) -> None:
        """Children are only attached when there are any."""
        thread = build_thread([node(1), node(2)])

        assert thread[1]["children"] is None
        assert thread[2]["children"] is None

    def test_roots_and_siblings_keep_input_order(self) -> None:
        """Order follows the flat list's sort."""
        comments = [node(5), node(3), node(9, parent_id=5), node(4, parent_id=5)]

        thread = build_thread(comments)

        assert list(thread) == [5, 3]
        assert list(thread[5]["children"]) == [9, 4]

    def test_every_comment_placed_once(self) -> None:
        """Each comment appears exactly once in the tree."""
        comments = [
            node(1),
            node(2, parent_id=1),
            node(3, parent_id=1),
            node(4, parent_id=3),
            node(5),
            node(6, parent_id=5),
        ]

        thread = build_thread(comments)

        seen = [n["id"] for _, n in walk_thread(thread)]
        assert sorted(seen) == [1, 2, 3, 4, 5, 6]

    def test_orphans_are_dropped(self) -> None:
        """A comment whose parent is not in the input is left out."""
        thread = build_thread([node(1), node(2, parent_id=99), node(3, parent_id=2)])

        assert list(thread) == [1]
        assert thread[1]["children"] is None

    def test_deleted_and_hidden_comments_keep_their_children(self) -> None:
        """Moderated comments stay in the tree as placeholders."""
        comments = [
            node(1, is_deleted=True),
            node(2, parent_id=1, is_hidden=True),
            node(3, parent_id=2),
        ]

        thread = build_thread(comments)

        assert thread[1]["is_deleted"] is True
        assert thread[1]["children"][2]["is_hidden"] is True
        assert list(thread[1]["children"][2]["children"]) == [3]

    def test_self_parent_is_not_placed(self) -> None:
        """A comment that is its own parent cannot loop."""
        thread = build_thread([node(1), node(2, parent_id=2)])

        assert list(thread) == [1]

    def test_cycle_is_not_placed(self) -> None:
        """Comments that are each other's parents never reach the root."""
        thread = build_thread([node(1), node(2, parent_id=3), node(3, parent_id=2)])

        assert list(thread) == [1]

    def test_duplicate_ids_placed_once(self) -> None:
        """The first occurrence of an id wins."""
        first = node(1)
        duplicate = Comment(id=1, post_id=2, message="duplicate")

        thread = build_thread([first, duplicate])

        assert thread[1]["message"] == "message 1"

    def test_unpersisted_comments_are_skipped(self) -> None:
        """Comments without an id cannot be keyed."""
        thread = build_thread([Comment(post_id=2, message="draft"), node(1)])

        assert list(thread) == [1]

    def test_max_depth_cuts_deep_replies(self) -> None:
        """Nesting beyond max_depth is left out."""
        comments = [node(1), node(2, parent_id=1), node(3, parent_id=2)]

        thread = build_thread(comments, max_depth=2)

        assert list(thread[1]["children"]) == [2]
        assert thread[1]["children"][2]["children"] is None

    def test_subtree_from_parent(self) -> None:
        """Starting from a non-root parent returns only its replies."""
        comments = [node(1), node(2, parent_id=1), node(3, parent_id=2), node(4)]

        thread = build_thread(comments, parent_id=1)

        assert list(thread) == [2]
        assert list(thread[2]["children"]) == [3]

    def test_matches_naive_rebuild(self) -> None:
        """Same tree as rescanning the full list at every level."""

        def naive(comments: list[Comment], parent_id: int = 0) -> dict:
            level = {}
            for comment in comments:
                if comment.parent_id == parent_id:
                    data = comment.to_dict()
                    children = naive(comments, comment.id)
                    if children:
                        data["children"] = children
                    level[comment.id] = data
            return level

        comments = [
            node(1),
            node(2),
            node(3, parent_id=1),
            node(4, parent_id=2),
            node(5, parent_id=1),
            node(6, parent_id=3),
            node(7, parent_id=42),
        ]

        assert build_thread(comments) == naive(comments)


class TestIndexByParent:
    """Tests for index_by_parent."""

    def test_groups_in_input_order(self) -> None:
        """Each parent maps to its replies in input order."""
        a, b, c = node(1), node(2, parent_id=1), node(3, parent_id=1)

        index = index_by_parent([a, b, c])

        assert index[0] == [a]
        assert index[1] == [b, c]


class TestWalkThread:
    """Tests for walk_thread."""

    def test_depth_first_with_depths(self) -> None:
        """Nodes come out depth-first with their nesting level."""
        thread = build_thread(
            [node(1), node(2, parent_id=1), node(3, parent_id=2), node(4)]
        )

        walked = [(depth, n["id"]) for depth, n in walk_thread(thread)]

        assert walked == [(0, 1), (1, 2), (2, 3), (0, 4)]

    def test_filter_hidden_at_display_time(self) -> None:
        """Hidden comments can be skipped while walking."""
        thread = build_thread([node(1), node(2, parent_id=1, is_hidden=True)])

        visible = [n["id"] for _, n in walk_thread(thread) if not n["is_hidden"]]

        assert visible == [1]
