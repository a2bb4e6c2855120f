"""Database connection module for commentman."""

from commentman.core.database.sqlite import (
    DatabaseCreationError,
    DatabaseInitializationError,
    DatabaseNotFoundError,
    connect,
    disconnect,
    ensure_database_file,
)


__all__ = [
    "DatabaseCreationError",
    "DatabaseInitializationError",
    "DatabaseNotFoundError",
    "connect",
    "disconnect",
    "ensure_database_file",
]
