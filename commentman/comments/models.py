"""Database model for threaded comments.

SQLite table definition plus the Comment entity.

Architecture: Adjacency List pattern
- One table for every post, partitioned logically by post_id
- parent_id references the parent comment (0 for root comments)
- Soft delete and hide flags keep rows in place to preserve threads
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from typing import Any

from .sanitizers import sanitize_message, sanitize_text


# SQLite's own CURRENT_TIMESTAMP layout, so datetime() comparisons work on text
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_PARENT_ID = 0


# ==============================================================================
# SQL Table Definitions
# ==============================================================================

COMMENT_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS comments (
    id         INTEGER       PRIMARY KEY AUTOINCREMENT,
    parent_id  INTEGER       NOT NULL DEFAULT 0,
    post_id    INTEGER       NOT NULL,
    username   NVARCHAR(80),
    message    TEXT          NOT NULL,
    timestamp  DATETIME      DEFAULT CURRENT_TIMESTAMP,
    ip         VARCHAR(50),
    is_deleted BOOLEAN       NOT NULL DEFAULT 0,
    is_hidden  BOOLEAN       NOT NULL DEFAULT 0
)
"""

# Fetching a post's comments in time order
COMMENT_POST_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS comments_post_idx
ON comments (post_id, timestamp)
"""

COMMENTS_TABLES_SQL = [
    COMMENT_TABLE_SQL,
    COMMENT_POST_INDEX_SQL,
]


# ==============================================================================
# Entity
# ==============================================================================


def format_timestamp(value: datetime) -> str:
    """Render a datetime the way SQLite stores CURRENT_TIMESTAMP (UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Read a stored timestamp back as an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


@dataclass
class Comment:
    """A single comment on a post.

    Built in memory by the caller without ``id`` or ``timestamp``; both
    are assigned by the store when the comment is added.
    """

    post_id: int | None = None
    message: str | None = None
    username: str | None = None
    parent_id: int = ROOT_PARENT_ID
    ip: str | None = None
    id: int | None = None
    timestamp: datetime | None = None
    is_deleted: bool = False
    is_hidden: bool = False

    # Display and projection order
    FIELD_ORDER = (
        "id",
        "parent_id",
        "post_id",
        "username",
        "message",
        "timestamp",
        "ip",
        "is_deleted",
        "is_hidden",
    )

    def __post_init__(self) -> None:
        for name in ("username", "message", "ip"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, value.strip())

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Comment":
        """Create Comment from a database row mapping."""
        return cls(
            id=row["id"],
            parent_id=row["parent_id"] or ROOT_PARENT_ID,
            post_id=row["post_id"],
            username=row["username"],
            message=row["message"],
            timestamp=parse_timestamp(row["timestamp"]),
            ip=row["ip"],
            is_deleted=bool(row["is_deleted"]),
            is_hidden=bool(row["is_hidden"]),
        )

    def get(self, name: str, default: Any = None) -> Any:
        """Read a field by name. Unknown names return ``default``."""
        if name not in self.field_names():
            return default
        return getattr(self, name)

    def set(self, name: str, value: Any) -> "Comment":
        """Write a field by name, trimming strings.

        Unknown names are ignored.
        """
        if name in self.field_names():
            if isinstance(value, str):
                value = value.strip()
            setattr(self, name, value)
        return self

    def prepare(self, allowed_tags: Iterable[str] = ()) -> "Comment":
        """Sanitize username and message before the comment is stored.

        Safe to call more than once: sanitized text is left unchanged.
        """
        self.username = sanitize_text(self.username)
        self.message = sanitize_message(self.message, allowed_tags)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, with an empty ``children`` slot."""
        data: dict[str, Any] = {name: getattr(self, name) for name in self.FIELD_ORDER}
        data["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        data["children"] = None
        return data

    def __str__(self) -> str:
        values = ", ".join(
            "" if getattr(self, name) is None else str(getattr(self, name))
            for name in self.FIELD_ORDER
        )
        return "{ " + values + " }"
