"""Dilemma cards: pick an option, draw against its success chance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Sequence

from ..storage.base import PlayerStat
from .cards import Card, DilemmaOption, Stat
from .events import DILEMMA_RESOLVED, EventBus
from .exceptions import ActionNotPermitted
from .feedback import FeedbackSink, NullFeedback
from .loot import LootOutcome, LootService
from .player import PlayerService

logger = logging.getLogger(__name__)

_REWARD_TYPES = ("HP", "GOLD")


class DilemmaStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class DilemmaOutcome:
    option: DilemmaOption
    status: DilemmaStatus
    draw: float
    message: str
    loot: LootOutcome | None = None
    damage: int = 0

    @property
    def success(self) -> bool:
        return self.status is DilemmaStatus.SUCCESS


def success_rewards(option: DilemmaOption) -> tuple[Stat, ...]:
    """Reward stats granted when ``option`` succeeds."""
    rewards = []
    for reward in option.rewards:
        label = str(reward.label).upper()
        if label not in _REWARD_TYPES:
            logger.warning("Ignoring unsupported dilemma reward %s", reward.label)
            continue
        rewards.append(Stat(label=label, value=reward.value))
    if (option.effect_type or "").lower() == "hp" and option.effect_value:
        rewards.append(Stat(label="HP", value=option.effect_value))
    return tuple(rewards)


class DilemmaSession:
    """One player's resolution of a dilemma card; resolves exactly once."""

    def __init__(
        self,
        card: Card,
        player_id: str,
        players: PlayerService,
        loot: LootService,
        *,
        rng: Random | None = None,
        feedback: FeedbackSink | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.card = card
        self.player_id = player_id
        self._players = players
        self._loot = loot
        self._rng = rng or Random()
        self._feedback = feedback or NullFeedback()
        self._event_bus = event_bus
        self.status = DilemmaStatus.PENDING
        self.outcome: DilemmaOutcome | None = None

    @property
    def options(self) -> Sequence[DilemmaOption]:
        return self.card.dilemma_options

    async def choose(self, index: int) -> DilemmaOutcome:
        if self.status is not DilemmaStatus.PENDING:
            raise ActionNotPermitted(f"Dilemma is already resolved ({self.status.value})")
        if not 0 <= index < len(self.options):
            raise ActionNotPermitted(f"Dilemma {self.card.card_id} has no option {index}")

        option = self.options[index]
        draw = self._rng.random() * 100
        # Status is set before any await so a concurrent choice is refused.
        if draw < option.success_chance:
            self.status = DilemmaStatus.SUCCESS
            self._feedback.play("success")
            self._feedback.vibrate([50, 50])
            loot = await self._loot.grant(self.player_id, success_rewards(option))
            outcome = DilemmaOutcome(option, self.status, draw, option.consequence_text, loot=loot)
        else:
            self.status = DilemmaStatus.FAIL
            self._feedback.play("error")
            self._feedback.vibrate([100, 100])
            damage = max(0, option.fail_damage)
            if damage:
                await self._players.adjust_stat(self.player_id, PlayerStat.HP, -damage)
            message = option.fail_message or "The attempt failed."
            outcome = DilemmaOutcome(option, self.status, draw, message, damage=damage)

        self.outcome = outcome
        logger.info(
            "Dilemma %s option %r resolved as %s for %s",
            self.card.card_id,
            option.label,
            outcome.status.value,
            self.player_id,
        )
        if self._event_bus is not None:
            await self._event_bus.publish(
                DILEMMA_RESOLVED,
                {
                    "player_id": self.player_id,
                    "card_id": self.card.card_id,
                    "option": option.label,
                    "status": outcome.status.value,
                    "damage": outcome.damage,
                },
            )
        return outcome
