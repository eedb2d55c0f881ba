"""Pytest fixtures for nexuscards."""

from __future__ import annotations

from random import Random

import pytest

from ..app import GameApp
from ..config import NexusConfig
from ..domain.feedback import RecordingFeedback


def app_fixture(*, seed: int = 7, **kwargs) -> GameApp:
    """In-memory app with every pacing delay disabled."""
    config = NexusConfig.instant(bot_token="test", **kwargs)
    config.dice.animation_frames = 0
    return GameApp(config, rng=Random(seed), feedback=RecordingFeedback())


@pytest.fixture()
def memory_app() -> GameApp:
    return app_fixture()
