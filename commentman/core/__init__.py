# Core infrastructure
from commentman.core.database import (
    DatabaseInitializationError,
    connect,
    disconnect,
)
from commentman.core.logging import configure_structlog, get_logger


__all__ = [
    "DatabaseInitializationError",
    "configure_structlog",
    "connect",
    "disconnect",
    "get_logger",
]
