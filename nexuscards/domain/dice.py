"""Two-d6 dice protocol shared by combat and trap sessions."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Awaitable, Callable

from ..config import DiceRules
from .exceptions import InvalidRoll

MIN_TOTAL = 2
MAX_TOTAL = 12

_MANUAL_TOTAL = re.compile(r"[+-]?\d+", re.ASCII)

FrameCallback = Callable[[int, int], None]
Sleeper = Callable[[float], Awaitable[None]]


class RollSource(str, Enum):
    VIRTUAL = "virtual"
    MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class DiceRoll:
    first: int
    second: int
    source: RollSource

    @property
    def total(self) -> int:
        return self.first + self.second


def split_total(total: int) -> tuple[int, int]:
    """Display split for a manually entered total."""
    first = total // 2
    return first, total - first


def validate_manual_total(value: object) -> int:
    """Return ``value`` as an int in [2, 12] or raise :class:`InvalidRoll`."""
    if isinstance(value, bool):
        raise InvalidRoll(value)
    if isinstance(value, int):
        total = value
    elif isinstance(value, str) and _MANUAL_TOTAL.fullmatch(value.strip()):
        total = int(value.strip())
    else:
        raise InvalidRoll(value)
    if total < MIN_TOTAL or total > MAX_TOTAL:
        raise InvalidRoll(value)
    return total


class DiceRoller:
    """Produce committed rolls from virtual dice or a physical sum."""

    def __init__(
        self,
        rules: DiceRules | None = None,
        *,
        rng: Random | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._rules = rules or DiceRules()
        self._rng = rng or Random()
        self._sleep = sleep

    def _pair(self) -> tuple[int, int]:
        return self._rng.randint(1, 6), self._rng.randint(1, 6)

    async def roll_virtual(self, on_frame: FrameCallback | None = None) -> DiceRoll:
        # Animation frames are display only; the committed pair is sampled afterwards.
        for _ in range(self._rules.animation_frames):
            frame = self._pair()
            if on_frame is not None:
                on_frame(*frame)
            if self._rules.frame_interval > 0:
                await self._sleep(self._rules.frame_interval)
        first, second = self._pair()
        return DiceRoll(first=first, second=second, source=RollSource.VIRTUAL)

    def manual(self, total: object) -> DiceRoll:
        value = validate_manual_total(total)
        first, second = split_total(value)
        return DiceRoll(first=first, second=second, source=RollSource.MANUAL)

    async def obtain(self, manual_total: object | None = None) -> DiceRoll:
        if manual_total is not None:
            return self.manual(manual_total)
        return await self.roll_virtual()
