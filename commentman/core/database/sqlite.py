"""SQLite database connection management.

Provides:
- Database file checks (and optional creation)
- Engine creation and disposal
- Fatal initialization errors
"""

from pathlib import Path

import structlog
from sqlalchemy import Engine, create_engine


logger = structlog.get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """The database cannot be used at all. Not meant to be recovered from."""


class DatabaseNotFoundError(DatabaseInitializationError):
    """Database file is missing and creation was not requested."""


class DatabaseCreationError(DatabaseInitializationError):
    """Database file or schema could not be created."""


def ensure_database_file(path: Path, create_file: bool = False) -> Path:
    """Make sure the database file exists.

    Args:
        path: Location of the SQLite file
        create_file: Create an empty file when it does not exist

    Returns:
        The path that was checked

    Raises:
        DatabaseNotFoundError: If the file is missing and create_file is False
        DatabaseCreationError: If the file could not be created
    """
    if path.is_file():
        return path

    logger.warning("database_file_missing", path=str(path))
    if not create_file:
        logger.critical("database_unavailable", path=str(path))
        msg = f"Cannot work without a database: {path}"
        raise DatabaseNotFoundError(msg)

    try:
        path.touch()
    except OSError as e:
        logger.critical("database_file_creation_failed", path=str(path), error=str(e))
        msg = f"Cannot create database file (check permissions): {path}"
        raise DatabaseCreationError(msg) from e

    if not path.is_file():
        logger.critical("database_file_creation_failed", path=str(path))
        msg = f"Cannot create database file (check permissions): {path}"
        raise DatabaseCreationError(msg)

    logger.info("database_file_created", path=str(path))
    return path


def connect(
    database: str | Path,
    create_file: bool = False,
    echo: bool = False,
) -> Engine:
    """Open an engine on a SQLite database file.

    Args:
        database: Path to the database file
        create_file: Create the file if it doesn't exist
        echo: Log every emitted statement

    Returns:
        SQLAlchemy engine bound to the file
    """
    path = ensure_database_file(Path(database), create_file=create_file)
    engine = create_engine(f"sqlite:///{path}", echo=echo)
    logger.info("database_connected", path=str(path))
    return engine


def disconnect(engine: Engine) -> None:
    """Release every connection held by the engine."""
    engine.dispose()
    logger.info("database_disconnected", url=str(engine.url))
