"""Combat balance simulation helpers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from random import Random
from typing import Dict

from ..app import GameApp
from ..config import NexusConfig
from ..domain.combat import CombatPerks, CombatStatus
from ..storage.base import PlayerStat


@dataclass(slots=True)
class SimulationResult:
    fights: int
    victories: int = 0
    defeats: int = 0
    stalemates: int = 0
    total_rounds: int = 0
    total_hp_lost: int = 0
    damage_histogram: Dict[int, int] = field(default_factory=dict)

    @property
    def win_rate(self) -> float:
        return self.victories / self.fights if self.fights else 0.0

    @property
    def average_rounds(self) -> float:
        return self.total_rounds / self.fights if self.fights else 0.0

    @property
    def average_hp_lost(self) -> float:
        return self.total_hp_lost / self.fights if self.fights else 0.0


class CombatSimulator:
    """Monte-Carlo simulation of attack-only fights against one enemy card."""

    def __init__(self, app: GameApp, *, rng: Random | None = None, max_rounds: int = 50) -> None:
        self._source = app
        self._rng = rng or Random()
        self._max_rounds = max_rounds

    async def simulate(
        self,
        card_id: str,
        *,
        fights: int = 1000,
        perks: CombatPerks | None = None,
        starting_armor: int = 0,
    ) -> SimulationResult:
        card = self._source.cards.catalog.get_card(card_id)
        # Isolated in-memory app with no pacing delays; the source app is only read.
        config = NexusConfig.instant(combat=replace(self._source.config.combat))
        config.dice.animation_frames = 0
        sandbox = GameApp(config, rng=self._rng)
        sandbox.cards.card(card)

        result = SimulationResult(fights=fights)
        for index in range(fights):
            player_id = f"sim-{index}"
            profile = await sandbox.player_service.fetch(player_id)
            if starting_armor:
                await sandbox.player_service.set_stat(player_id, PlayerStat.ARMOR, starting_armor)
            session = await sandbox.start_combat(player_id, card, perks=perks)

            rounds = 0
            hp = profile.hp
            while session.status is CombatStatus.ACTIVE and hp > 0 and rounds < self._max_rounds:
                outcome = await session.attack()
                rounds += 1
                result.damage_histogram[outcome.damage] = (
                    result.damage_histogram.get(outcome.damage, 0) + 1
                )
                if outcome.counter is not None:
                    hp -= outcome.counter.hp_loss

            result.total_rounds += rounds
            result.total_hp_lost += profile.hp - max(0, hp)
            if session.status is CombatStatus.VICTORY:
                result.victories += 1
            elif hp <= 0:
                result.defeats += 1
            else:
                result.stalemates += 1
        return result
