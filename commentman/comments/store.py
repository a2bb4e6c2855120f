"""Comment storage layer.

Persistence for:
- Comment CRUD on a single SQLite table
- Moderation flags (soft delete, hide)
- Bulk removal by author or by age
- Thread retrieval per post

Every caller-supplied value is sent as a bound parameter.
"""

import re
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import Engine, TextClause, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from commentman.config.settings import Settings, get_settings
from commentman.core.database import DatabaseCreationError, connect, disconnect

from .models import (
    COMMENTS_TABLES_SQL,
    ROOT_PARENT_ID,
    Comment,
    format_timestamp,
    parse_timestamp,
)
from .sanitizers import sanitize_text
from .schemas import CommentCreate
from .thread import Thread, build_thread


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentValidationError(CommentError):
    """Comment rejected before reaching storage."""

    def __init__(self, message: str = "Invalid comment", code: str = "invalid_comment"):
        super().__init__(message, code)


class InvalidDurationError(CommentValidationError):
    """Relative duration could not be understood."""

    def __init__(self, message: str = "Invalid duration"):
        super().__init__(message, "invalid_duration")


# ==============================================================================
# Relative Durations
# ==============================================================================


# Lower bound for age thresholds that fall before year 0000
EARLIEST_TIMESTAMP = "0000-01-01 00:00:00"

# "1 day", "6 months", "20 minutes", "3 years", ...
DURATION_PATTERN = re.compile(
    r"^\s*(\d+)\s*(second|minute|hour|day|week|month|year)s?\s*$",
    re.IGNORECASE,
)


def parse_duration(duration: str) -> str:
    """Translate a relative duration into an SQLite date modifier.

    Weeks are not an SQLite unit, so they are converted to days.

    Args:
        duration: Text such as "1 day" or "6 months"

    Returns:
        Modifier pointing back in time, e.g. "-1 days"

    Raises:
        InvalidDurationError: If the text is not a count followed by a unit
    """
    match = DURATION_PATTERN.match(duration) if isinstance(duration, str) else None
    if not match:
        msg = f"Invalid duration: {duration!r}"
        raise InvalidDurationError(msg)

    amount, unit = int(match.group(1)), match.group(2).lower()
    if unit == "week":
        amount, unit = amount * 7, "day"
    return f"-{amount} {unit}s"


# ==============================================================================
# Comment Store
# ==============================================================================


class CommentStore:
    """Storage for comments of every post, in one table.

    Single connection, synchronous calls, no retries. Lookups that match
    nothing return None; writes report success as a bool.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        clock: Callable[[], datetime] | None = None,
        settings: Settings | None = None,
    ):
        """Bind to an engine, creating the schema when it is missing.

        Raises:
            DatabaseCreationError: If the table cannot be created
        """
        self.engine = engine
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: datetime.now(UTC))
        self._prepare_statements()

        if self.is_empty() and not self.create_schema():
            logger.critical("comments_schema_unavailable", url=str(engine.url))
            msg = "Couldn't create the comments table"
            raise DatabaseCreationError(msg)

    @classmethod
    def open(
        cls,
        database: str | Path | None = None,
        create_file: bool | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        settings: Settings | None = None,
    ) -> "CommentStore":
        """Open the store on a database file.

        Args:
            database: Path to the SQLite file (defaults to settings)
            create_file: Create the file if missing (defaults to settings)
            clock: Source of "now" for timestamps and age windows
            settings: Settings to use instead of the cached ones
        """
        settings = settings or get_settings()
        engine = connect(
            database if database is not None else settings.database_path,
            create_file=(
                settings.database_create if create_file is None else create_file
            ),
            echo=settings.database_echo,
        )
        try:
            return cls(engine, clock=clock, settings=settings)
        except Exception:
            disconnect(engine)
            raise

    def _prepare_statements(self) -> None:
        """Prepare SQL statements with named bind parameters."""
        self._table_count = text("SELECT COUNT(*) FROM comments")

        self._insert_comment = text("""
            INSERT INTO comments
            (parent_id, post_id, username, message, timestamp, ip,
             is_deleted, is_hidden)
            VALUES
            (:parent_id, :post_id, :username, :message, :timestamp, :ip,
             :is_deleted, :is_hidden)
        """)

        self._get_comment = text("""
            SELECT * FROM comments
            WHERE id = :id
        """)

        self._get_parent = text("""
            SELECT id FROM comments
            WHERE id = :id AND post_id = :post_id
        """)

        self._get_comments_by_post = text("""
            SELECT * FROM comments
            WHERE post_id = :post_id
            ORDER BY timestamp ASC, parent_id ASC, id ASC
            LIMIT :limit
        """)

        self._delete_by_id = text("""
            DELETE FROM comments
            WHERE id = :id
        """)

        self._delete_by_username = text("""
            DELETE FROM comments
            WHERE username IN (:username, :sanitized_username)
        """)

        # NULL when the offset leaves SQLite's 0000-9999 date range
        self._age_threshold = text("SELECT datetime(:now, :offset)")

        self._delete_newer_than = text("""
            DELETE FROM comments
            WHERE timestamp >= :threshold
        """)

        self._delete_older_than = text("""
            DELETE FROM comments
            WHERE timestamp <= :threshold
        """)

        # Moderation flags
        self._update_flag = {
            "is_deleted": text("""
                UPDATE comments
                SET is_deleted = :value
                WHERE id = :id
            """),
            "is_hidden": text("""
                UPDATE comments
                SET is_hidden = :value
                WHERE id = :id
            """),
        }

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def close(self) -> None:
        """Close the database connection."""
        disconnect(self.engine)

    def __enter__(self) -> "CommentStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ==========================================================================
    # Schema
    # ==========================================================================

    def is_empty(self) -> bool:
        """Check whether the comments table is missing."""
        return not inspect(self.engine).has_table("comments")

    def create_schema(self) -> bool:
        """Create the comments table and its index if absent."""
        try:
            with self.engine.begin() as conn:
                for sql in COMMENTS_TABLES_SQL:
                    conn.execute(text(sql))
        except SQLAlchemyError:
            logger.exception("comments_schema_creation_failed")
            return False

        logger.info("comments_schema_created")
        return True

    def count(self) -> int:
        """Count the comments stored for all posts."""
        with self.engine.connect() as conn:
            return conn.execute(self._table_count).scalar_one()

    def __len__(self) -> int:
        return self.count()

    # ==========================================================================
    # Comment CRUD
    # ==========================================================================

    def validate(self, comment: Comment) -> CommentCreate:
        """Check the fields of a comment that is about to be inserted.

        Raises:
            CommentValidationError: If a mandatory field is missing or invalid
        """
        try:
            return CommentCreate(
                post_id=comment.post_id,
                parent_id=comment.parent_id,
                username=comment.username,
                message=comment.message,
                ip=comment.ip,
            )
        except ValidationError as e:
            raise CommentValidationError(str(e)) from e

    def add(self, comment: Comment) -> bool:
        """Insert a new comment.

        The comment should already be prepared (sanitized). On success the
        store-assigned ``id`` and ``timestamp`` are set on it.

        Raises:
            CommentValidationError: If fields are invalid or the parent
                comment does not exist in the same post
        """
        payload = self.validate(comment)
        now = self.clock()
        params = {
            **payload.model_dump(),
            "timestamp": format_timestamp(now),
            "is_deleted": comment.is_deleted,
            "is_hidden": comment.is_hidden,
        }

        try:
            with self.engine.begin() as conn:
                if payload.parent_id != ROOT_PARENT_ID:
                    parent = conn.execute(
                        self._get_parent,
                        {"id": payload.parent_id, "post_id": payload.post_id},
                    ).first()
                    if parent is None:
                        msg = (
                            f"Parent comment {payload.parent_id} "
                            f"not found in post {payload.post_id}"
                        )
                        raise CommentValidationError(msg, "parent_not_found")
                comment_id = conn.execute(self._insert_comment, params).lastrowid
        except SQLAlchemyError:
            logger.exception("comment_add_failed", post_id=payload.post_id)
            return False

        comment.id = comment_id
        comment.timestamp = parse_timestamp(params["timestamp"])
        logger.info(
            "comment_added",
            comment_id=comment.id,
            post_id=payload.post_id,
            parent_id=payload.parent_id,
        )
        return True

    def fetch_by_id(self, comment_id: int) -> Comment | None:
        """Get a comment by ID, or None if there is no such comment."""
        with self.engine.connect() as conn:
            row = conn.execute(self._get_comment, {"id": comment_id}).mappings().first()
        return Comment.from_row(row) if row else None

    def fetch_by_post(self, post_id: int, limit: int | None = None) -> list[Comment]:
        """Get the comments of a post, earliest first.

        Sorted by timestamp, then parent_id, so replies posted in the same
        second still follow their parent.
        """
        if limit is None:
            limit = self.settings.comments_fetch_limit
        if limit < 1:
            msg = f"Limit must be positive, got {limit}"
            raise ValueError(msg)

        with self.engine.connect() as conn:
            rows = conn.execute(
                self._get_comments_by_post,
                {"post_id": post_id, "limit": limit},
            ).mappings()
            return [Comment.from_row(row) for row in rows]

    def fetch_thread(self, post_id: int, limit: int | None = None) -> Thread:
        """Get the comments of a post arranged as a reply tree."""
        comments = self.fetch_by_post(post_id, limit)
        return build_thread(
            comments, max_depth=self.settings.comments_thread_max_depth
        )

    # ==========================================================================
    # Moderation
    # ==========================================================================

    def mark_deleted(self, comment_id: int, deleted: bool = True) -> bool:
        """Soft delete (or restore) a comment, keeping its row for the thread."""
        return self._set_flag("is_deleted", comment_id, deleted)

    def mark_hidden(self, comment_id: int, hidden: bool = True) -> bool:
        """Hide (or unhide) a comment from normal display."""
        return self._set_flag("is_hidden", comment_id, hidden)

    def _set_flag(self, flag: str, comment_id: int, value: bool) -> bool:
        try:
            with self.engine.begin() as conn:
                updated = conn.execute(
                    self._update_flag[flag], {"id": comment_id, "value": value}
                ).rowcount
        except SQLAlchemyError:
            logger.exception("comment_flag_update_failed", comment_id=comment_id)
            return False

        if not updated:
            logger.info("comment_flag_target_missing", comment_id=comment_id)
            return False

        logger.info(
            "comment_flag_updated", comment_id=comment_id, flag=flag, value=value
        )
        return True

    # ==========================================================================
    # Removal
    # ==========================================================================

    def remove_by_id(self, comment_id: int) -> bool:
        """Remove a comment. False if it did not exist."""
        removed = self._remove(self._delete_by_id, {"id": comment_id}, by="id")
        return bool(removed)

    def remove_by_username(self, username: str) -> bool:
        """Remove every comment posted under ``username``.

        Matches the name as given and in its sanitized form.
        """
        name = username.strip()
        params = {"username": name, "sanitized_username": sanitize_text(name)}
        return self._remove(self._delete_by_username, params, by="username") is not None

    def remove_newer_than(self, duration: str | None = None) -> bool:
        """Remove comments posted within ``duration`` of now ("1 day" by default)."""
        if duration is None:
            duration = self.settings.comments_remove_newer_than
        return self._remove_by_age(self._delete_newer_than, duration, "newer_than")

    def remove_older_than(self, duration: str | None = None) -> bool:
        """Remove comments posted at least ``duration`` ago ("6 months" by default)."""
        if duration is None:
            duration = self.settings.comments_remove_older_than
        return self._remove_by_age(self._delete_older_than, duration, "older_than")

    def _remove_by_age(self, statement: TextClause, duration: str, by: str) -> bool:
        params = {
            "now": format_timestamp(self.clock()),
            "offset": parse_duration(duration),
        }
        try:
            with self.engine.connect() as conn:
                threshold = conn.execute(self._age_threshold, params).scalar_one()
        except SQLAlchemyError:
            logger.exception("comments_remove_failed", by=by, duration=duration)
            return False

        if threshold is None:
            # Further back than any stored timestamp
            threshold = EARLIEST_TIMESTAMP
        params = {"threshold": threshold}
        return self._remove(statement, params, by=by, duration=duration) is not None

    def _remove(
        self, statement: TextClause, params: dict[str, Any], by: str, **context: Any
    ) -> int | None:
        """Run a delete statement, returning the row count or None on failure."""
        try:
            with self.engine.begin() as conn:
                count = conn.execute(statement, params).rowcount
        except SQLAlchemyError:
            logger.exception("comments_remove_failed", by=by, **context)
            return None

        logger.info("comments_removed", by=by, count=count, **context)
        return count
