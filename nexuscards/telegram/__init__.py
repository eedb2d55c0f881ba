"""Telegram integration helpers."""

from .keyboards import planets_keyboard, roll_keyboard, trade_keyboard
from .router import RoomDirectory, build_router

__all__ = [
    "build_router",
    "RoomDirectory",
    "planets_keyboard",
    "roll_keyboard",
    "trade_keyboard",
]
