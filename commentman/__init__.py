"""Comment storage and threading for posts.

The package logs through structlog but leaves configuration to the
application. Call ``configure_structlog`` once at startup to get console
output and rotating log files::

    from commentman.config import get_settings
    from commentman.core.logging import configure_structlog

    configure_structlog(get_settings())
"""

from commentman.comments import Comment, CommentStore, build_thread


__version__ = "0.1.0"

__all__ = ["Comment", "CommentStore", "build_thread"]
