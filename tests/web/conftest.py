"""Shared fixtures for web tests."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from loco_tracker.config import TrackerConfig
from loco_tracker.web.app import app
from loco_tracker.web.service import TrackingService


@pytest.fixture
def client():
    """FastAPI test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def config(tmp_path) -> TrackerConfig:
    return TrackerConfig(db_path=str(tmp_path / "trail.db"))


def patch_service(**kwargs):
    """Patch the app's TrackingService with a mock whose ``track`` is configured by *kwargs*."""
    mock_svc = MagicMock()
    for name, value in kwargs.items():
        setattr(mock_svc.track, name, value)
    return patch("loco_tracker.web.app.TrackingService", return_value=mock_svc)


def patch_real_service(config: TrackerConfig, source):
    """Patch the app to build a real TrackingService over *config* and a fake *source*."""
    return patch(
        "loco_tracker.web.app.TrackingService",
        side_effect=lambda: TrackingService(config=config, source=source),
    )
