"""Shared test fixtures for mission-control tests."""

from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mission_control.api.dependencies import get_cli
from mission_control.main import create_app
from mission_control.settings import Settings


class FakeCli:
    """In-memory stand-in for the openclaw CLI wrapper.

    ``sessions=None`` mimics a CLI that is missing or failing.
    """

    def __init__(
        self,
        sessions: list[dict[str, Any]] | None = None,
        jobs: list[dict[str, Any]] | None = None,
    ) -> None:
        self.sessions = sessions
        self.jobs = jobs or []

    async def sessions_list(self) -> list[dict[str, Any]] | None:
        return self.sessions

    async def cron_list(self) -> list[dict[str, Any]]:
        return self.jobs


@pytest.fixture
def now() -> datetime:
    """Provide a consistent reference time."""
    return datetime(2026, 2, 26, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointed at a throwaway data directory and agent home."""
    openclaw_dir = tmp_path / "openclaw-home"
    openclaw_dir.mkdir()
    return Settings(
        data_dir=tmp_path / "data",
        openclaw_dir=openclaw_dir,
        openclaw_bin="openclaw-not-installed-for-tests",
        budget_usd=100.0,
        auth_secret="",
        admin_password="",
        timezone="UTC",
    )


@pytest.fixture
def fake_cli() -> FakeCli:
    return FakeCli()


@pytest.fixture
def app(settings: Settings, now: datetime, fake_cli: FakeCli) -> FastAPI:
    """Application with a frozen clock and the fake CLI injected."""
    application = create_app(settings)
    application.state.clock = lambda: now
    application.dependency_overrides[get_cli] = lambda: fake_cli
    return application


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
