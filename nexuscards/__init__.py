"""nexuscards companion engine public API."""

from .app import GameApp
from .config import NexusConfig
from .registry import CardRegistry, SynonymRegistry

__all__ = [
    "GameApp",
    "NexusConfig",
    "CardRegistry",
    "SynonymRegistry",
]
