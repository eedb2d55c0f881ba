"""Testing utilities for nexuscards."""

from .factory import CardFactory, PlayerFactory
from .fixtures import app_fixture, memory_app

__all__ = [
    "CardFactory",
    "PlayerFactory",
    "app_fixture",
    "memory_app",
]
