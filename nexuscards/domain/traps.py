"""Trap resolution: class bypass or a roll against the difficulty."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol

from ..config import TrapRules
from .cards import ANY_CLASS, Card, PlayerClass, TrapConfig
from .dice import DiceRoll, DiceRoller
from .events import TRAP_RESOLVED, EventBus
from .exceptions import ActionNotPermitted, SessionBusy
from .feedback import FeedbackSink, NullFeedback
from .loot import LootClaim, LootOutcome

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class DamageSink(Protocol):
    async def on_player_damage(self, delta: int) -> None: ...


class TrapStatus(str, Enum):
    ACTIVE = "active"
    SUCCESS = "success"
    FAIL = "fail"
    CLAIMED = "claimed"


@dataclass(frozen=True, slots=True)
class TrapOutcome:
    status: TrapStatus
    roll: DiceRoll | None
    damage: int
    message: str


def can_disarm(config: TrapConfig, player_class: PlayerClass | None) -> bool:
    """Only an exact class match bypasses the roll; ``ANY`` matches nobody."""
    if player_class is None or config.disarm_class == ANY_CLASS:
        return False
    return config.disarm_class == player_class


class TrapSession:
    def __init__(
        self,
        card: Card,
        player_class: PlayerClass | None,
        vitals: DamageSink,
        *,
        dice: DiceRoller,
        rules: TrapRules | None = None,
        feedback: FeedbackSink | None = None,
        loot: LootClaim | None = None,
        event_bus: EventBus | None = None,
        player_id: str | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.card = card
        self.rules = rules or TrapRules()
        self.config = card.trap_config or TrapConfig(
            difficulty=self.rules.default_difficulty,
            damage=self.rules.default_damage,
        )
        self.player_class = player_class
        self._vitals = vitals
        self._dice = dice
        self._feedback = feedback or NullFeedback()
        self._loot = loot
        self._event_bus = event_bus
        self._player_id = player_id
        self._sleep = sleep
        self.status = TrapStatus.ACTIVE
        self.is_rolling = False
        self.is_closed = False

    @property
    def can_disarm(self) -> bool:
        return can_disarm(self.config, self.player_class)

    async def disarm(self) -> TrapOutcome:
        self._ensure_active()
        if not self.can_disarm:
            raise ActionNotPermitted("This class cannot disarm the trap")
        self.status = TrapStatus.SUCCESS
        self._feedback.play("success")
        self._feedback.vibrate([50, 50, 50])
        outcome = TrapOutcome(TrapStatus.SUCCESS, None, 0, self.config.success_message)
        await self._resolved(outcome)
        return outcome

    async def roll(self, manual_total: object | None = None) -> TrapOutcome:
        self._ensure_active()
        if self.is_rolling:
            raise SessionBusy("A roll is already in progress")
        self.is_rolling = True
        try:
            roll = await self._dice.obtain(manual_total)
        finally:
            self.is_rolling = False

        if roll.total >= self.config.difficulty:
            self.status = TrapStatus.SUCCESS
            self._feedback.play("success")
            self._feedback.vibrate([50, 50])
            outcome = TrapOutcome(TrapStatus.SUCCESS, roll, 0, self.config.success_message)
            await self._resolved(outcome)
            return outcome

        self.status = TrapStatus.FAIL
        self._feedback.play("error")
        self._feedback.vibrate([200, 100, 200])
        damage = max(0, self.config.damage)
        if damage > 0:
            if self.rules.fail_damage_delay > 0:
                await self._sleep(self.rules.fail_damage_delay)
            await self._vitals.on_player_damage(-damage)
        self.is_closed = True
        outcome = TrapOutcome(TrapStatus.FAIL, roll, damage, self.config.fail_message)
        await self._resolved(outcome)
        return outcome

    async def claim(self) -> LootOutcome | None:
        """Collect the trap loot after a success; with no loot this just acknowledges."""
        if self.status is not TrapStatus.SUCCESS:
            raise ActionNotPermitted(f"Trap is {self.status.value}, nothing to claim")
        self.status = TrapStatus.CLAIMED
        self.is_closed = True
        self._feedback.play("open")
        if not self.config.loot or self._loot is None:
            return None
        return await self._loot.claim(self.config.loot)

    def _ensure_active(self) -> None:
        if self.status is not TrapStatus.ACTIVE:
            raise ActionNotPermitted(f"Trap is {self.status.value}")

    async def _resolved(self, outcome: TrapOutcome) -> None:
        logger.info(
            "Trap %s resolved as %s for %s", self.card.card_id, outcome.status.value, self._player_id
        )
        if self._event_bus is not None:
            await self._event_bus.publish(
                TRAP_RESOLVED,
                {
                    "player_id": self._player_id,
                    "card_id": self.card.card_id,
                    "status": outcome.status.value,
                    "damage": outcome.damage,
                },
            )
