"""Shared fixtures for commentman tests."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from commentman.comments.models import Comment
from commentman.comments.store import CommentStore
from commentman.config.settings import Settings


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and .env files."""
    return Settings(_env_file=None, environment="testing", log_to_file=False)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at a fixed UTC instant."""
    return FrozenClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Location of a not-yet-created database file."""
    return tmp_path / "comments.db"


@pytest.fixture
def store(db_path: Path, clock: FrozenClock, settings: Settings):
    """Store on a fresh database file."""
    with CommentStore.open(
        db_path, create_file=True, clock=clock, settings=settings
    ) as s:
        yield s


@pytest.fixture
def make_comment():
    """Factory for prepared comments."""

    def factory(
        post_id: int = 2,
        message: str = "First message",
        username: str = "Ipsum of Lorem",
        parent_id: int = 0,
        ip: str = "127.0.0.1",
    ) -> Comment:
        return Comment(
            post_id=post_id,
            message=message,
            username=username,
            parent_id=parent_id,
            ip=ip,
        ).prepare()

    return factory
