"""Comment system module.

Provides threaded comments for posts with:
- A Comment entity and its sanitization
- SQLite-backed storage (CommentStore)
- Reply tree reconstruction (build_thread)
"""

from .models import COMMENTS_TABLES_SQL, Comment
from .store import (
    CommentError,
    CommentStore,
    CommentValidationError,
    InvalidDurationError,
    parse_duration,
)
from .thread import build_thread, walk_thread


__all__ = [
    "COMMENTS_TABLES_SQL",
    "Comment",
    "CommentError",
    "CommentStore",
    "CommentValidationError",
    "InvalidDurationError",
    "build_thread",
    "parse_duration",
    "walk_thread",
]
