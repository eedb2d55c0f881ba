"""Conversion of reward stats into player state changes."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ..storage.base import PlayerStat
from .cards import Card, CardType, Stat, StationConfig
from .events import LOOT_CLAIMED, EventBus
from .inventory import InventoryItem
from .player import PlayerService
from .stats import StatKey, StatResolver, parse_stat_value

logger = logging.getLogger(__name__)

# Checked in order, first match wins.
_REWARD_GROUPS: tuple[tuple[StatKey, PlayerStat], ...] = (
    (StatKey.HEAL, PlayerStat.HP),
    (StatKey.FUEL, PlayerStat.FUEL),
    (StatKey.GOLD, PlayerStat.GOLD),
    (StatKey.OXYGEN, PlayerStat.OXYGEN),
    (StatKey.ARMOR, PlayerStat.ARMOR),
)


@dataclass(slots=True)
class LootOutcome:
    adjustments: list[tuple[PlayerStat, int]] = field(default_factory=list)
    granted_items: list[InventoryItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.adjustments and not self.granted_items


class LootService:
    """Apply reward stats to a player."""

    def __init__(
        self,
        players: PlayerService,
        resolver: StatResolver | None = None,
        *,
        event_bus: EventBus | None = None,
    ) -> None:
        self._players = players
        self._resolver = resolver or StatResolver()
        self._event_bus = event_bus

    async def grant(
        self,
        player_id: str,
        stats: Iterable[Stat],
        *,
        cards: Sequence[Card] = (),
    ) -> LootOutcome:
        outcome = LootOutcome()
        for stat in stats:
            value = parse_stat_value(stat.value)
            if not value:
                continue
            key = self._resolver.classify(str(stat.label), [group for group, _ in _REWARD_GROUPS])
            if key is not None:
                target = dict(_REWARD_GROUPS)[key]
                await self._players.adjust_stat(player_id, target, value)
                outcome.adjustments.append((target, value))
                continue
            item = InventoryItem.from_card(_loot_card(stat))
            await self._players.add_item(player_id, item)
            outcome.granted_items.append(item)

        for card in cards:
            outcome.granted_items.append(await self._players.add_item(player_id, card))

        logger.info(
            "Granted %d adjustment(s) and %d item(s) to %s",
            len(outcome.adjustments),
            len(outcome.granted_items),
            player_id,
        )
        if self._event_bus is not None and not outcome.is_empty:
            await self._event_bus.publish(
                LOOT_CLAIMED,
                {
                    "player_id": player_id,
                    "adjustments": [(stat.value, delta) for stat, delta in outcome.adjustments],
                    "items": [item.instance_id for item in outcome.granted_items],
                },
            )
        return outcome

    async def claim_station_rewards(self, player_id: str, station: StationConfig) -> LootOutcome:
        outcome = LootOutcome()
        if station.fuel_reward:
            await self._players.adjust_stat(player_id, PlayerStat.FUEL, station.fuel_reward)
            outcome.adjustments.append((PlayerStat.FUEL, station.fuel_reward))
        if station.repair_amount:
            await self._players.adjust_stat(player_id, PlayerStat.HP, station.repair_amount)
            outcome.adjustments.append((PlayerStat.HP, station.repair_amount))
        if station.refill_o2:
            limit = self._players.limits.max_oxygen
            await self._players.set_stat(player_id, PlayerStat.OXYGEN, limit)
            outcome.adjustments.append((PlayerStat.OXYGEN, limit))
        return outcome


def _loot_card(stat: Stat) -> Card:
    loot_id = f"LOOT-{uuid.uuid4().hex[:8]}"
    return Card(
        card_id=loot_id,
        title=str(stat.label),
        type=CardType.ITEM,
        description="Kořist",
        stats=(stat,),
    )


class LootClaim:
    """Session-local, idempotent claim of one reward bundle."""

    def __init__(self, service: LootService, player_id: str) -> None:
        self._service = service
        self._player_id = player_id
        self._claimed = False

    @property
    def is_claimed(self) -> bool:
        return self._claimed

    async def claim(self, stats: Iterable[Stat], *, cards: Sequence[Card] = ()) -> LootOutcome | None:
        if self._claimed:
            return None
        # Set before awaiting: concurrent callers see the claim as taken.
        self._claimed = True
        return await self._service.grant(self._player_id, stats, cards=cards)
