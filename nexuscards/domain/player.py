"""Player-centric utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..config import PlayerLimits
from ..storage.base import PlayerRecord, PlayerStat, PlayerStore
from .cards import Card, CardCatalog, PlayerClass
from .exceptions import InsufficientGold
from .inventory import InventoryItem, find_item, resource_totals

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlayerProfile:
    player_id: str
    nickname: str | None
    player_class: PlayerClass | None
    stats: Mapping[str, int]
    inventory: Sequence[InventoryItem]

    @property
    def hp(self) -> int:
        return self.stats.get(PlayerStat.HP.value, 0)

    @property
    def armor(self) -> int:
        return self.stats.get(PlayerStat.ARMOR.value, 0)


def starting_stats(limits: PlayerLimits) -> dict[str, int]:
    return {
        PlayerStat.HP.value: limits.starting_hp,
        PlayerStat.ARMOR.value: limits.starting_armor,
        PlayerStat.GOLD.value: limits.starting_gold,
        PlayerStat.FUEL.value: limits.starting_fuel,
        PlayerStat.OXYGEN.value: limits.starting_oxygen,
    }


def seed_record(limits: PlayerLimits, record: PlayerRecord) -> None:
    """Initialise a freshly created record with the starting vitals."""
    for key, value in starting_stats(limits).items():
        record.stats.setdefault(key, value)


def clamp_stat(limits: PlayerLimits, stat: PlayerStat, value: int) -> int:
    """Keep a vital inside its bounds (HP/fuel/O2 capped, nothing negative)."""
    upper = {
        PlayerStat.HP: limits.max_hp,
        PlayerStat.FUEL: limits.max_fuel,
        PlayerStat.OXYGEN: limits.max_oxygen,
    }.get(stat)
    value = max(0, value)
    if upper is not None:
        value = min(upper, value)
    return value


class PlayerService:
    """Expose read/write operations for player state."""

    def __init__(
        self,
        store: PlayerStore,
        *,
        limits: PlayerLimits | None = None,
        catalog: CardCatalog | None = None,
    ) -> None:
        self._store = store
        self._limits = limits or PlayerLimits()
        self._catalog = catalog

    @property
    def store(self) -> PlayerStore:
        return self._store

    @property
    def limits(self) -> PlayerLimits:
        return self._limits

    def attach_catalog(self, catalog: CardCatalog) -> None:
        """Attach a catalog post-instantiation (useful for tests)."""
        self._catalog = catalog

    async def fetch(self, player_id: str) -> PlayerProfile:
        record = await self._store.get_or_create(player_id)
        return self._to_profile(record)

    async def register(
        self,
        player_id: str,
        nickname: str | None = None,
        player_class: PlayerClass | None = None,
    ) -> PlayerProfile:
        record = await self._store.get_or_create(player_id, nickname)
        if player_class is not None and record.player_class != player_class:
            record.player_class = player_class
            await self._store.save(record)
        return self._to_profile(record)

    async def add_item(self, player_id: str, item: Card | InventoryItem) -> InventoryItem:
        """Append a new instance (a card template is instantiated first)."""
        instance = item if isinstance(item, InventoryItem) else InventoryItem.from_card(item)
        record = await self._store.get_or_create(player_id)
        record.inventory.append(instance)
        await self._store.save(record)
        return instance

    async def grant_card(self, player_id: str, card_id: str) -> InventoryItem:
        if self._catalog is None:
            raise RuntimeError("PlayerService has no catalog attached")
        return await self.add_item(player_id, self._catalog.get_card(card_id))

    async def remove_item(self, player_id: str, instance_id: str) -> InventoryItem | None:
        record = await self._store.get_or_create(player_id)
        item = find_item(record.inventory, instance_id)
        if item is None:
            return None
        record.inventory = [entry for entry in record.inventory if entry.instance_id != instance_id]
        await self._store.save(record)
        return item

    async def purchase(self, player_id: str, card: Card, price: int) -> InventoryItem:
        """Charge ``price`` gold and add a new instance of ``card`` in one write."""
        record = await self._store.get_or_create(player_id)
        gold = record.stat(PlayerStat.GOLD)
        if gold < price:
            raise InsufficientGold(gold, price)
        record.stats[PlayerStat.GOLD.value] = gold - price
        instance = InventoryItem.from_card(card)
        record.inventory.append(instance)
        await self._store.save(record)
        return instance

    async def sell_item(self, player_id: str, instance_id: str, price: int) -> InventoryItem | None:
        record = await self._store.get_or_create(player_id)
        item = find_item(record.inventory, instance_id)
        if item is None:
            return None
        record.inventory = [entry for entry in record.inventory if entry.instance_id != instance_id]
        record.stats[PlayerStat.GOLD.value] = clamp_stat(
            self._limits, PlayerStat.GOLD, record.stat(PlayerStat.GOLD) + price
        )
        await self._store.save(record)
        return item

    async def adjust_stat(self, player_id: str, stat: PlayerStat, delta: int) -> int:
        """Apply ``delta`` to a vital, clamp it and return the stored value."""
        record = await self._store.get_or_create(player_id)
        current = record.stat(stat)
        updated = clamp_stat(self._limits, stat, current + delta)
        if updated != current:
            record.stats[stat.value] = updated
            await self._store.save(record)
        return updated

    async def set_stat(self, player_id: str, stat: PlayerStat, value: int) -> int:
        record = await self._store.get_or_create(player_id)
        record.stats[stat.value] = clamp_stat(self._limits, stat, value)
        await self._store.save(record)
        return record.stats[stat.value]

    async def update_item(self, player_id: str, item: InventoryItem) -> None:
        """Replace the stored instance with the same id."""
        record = await self._store.get_or_create(player_id)
        record.inventory = [
            item if entry.instance_id == item.instance_id else entry for entry in record.inventory
        ]
        await self._store.save(record)

    async def resource_totals(self, player_id: str) -> Mapping[str, int]:
        record = await self._store.get_or_create(player_id)
        return resource_totals(record.inventory)

    def _to_profile(self, record: PlayerRecord) -> PlayerProfile:
        return PlayerProfile(
            player_id=record.player_id,
            nickname=record.nickname,
            player_class=record.player_class,
            stats=dict(record.stats),
            inventory=[item.copy() for item in record.inventory],
        )


class PlayerVitals:
    """Vitals callbacks bound to one player, handed to combat and trap sessions."""

    def __init__(self, service: PlayerService, player_id: str) -> None:
        self._service = service
        self.player_id = player_id

    async def current_armor(self) -> int:
        profile = await self._service.fetch(self.player_id)
        return profile.armor

    async def current_hp(self) -> int:
        profile = await self._service.fetch(self.player_id)
        return profile.hp

    async def on_player_damage(self, delta: int) -> None:
        await self._service.adjust_stat(self.player_id, PlayerStat.HP, delta)

    async def on_armor_change(self, delta: int) -> None:
        await self._service.adjust_stat(self.player_id, PlayerStat.ARMOR, delta)

    async def on_item_used(self, item: InventoryItem) -> None:
        if item.card.is_consumable:
            removed = await self._service.remove_item(self.player_id, item.instance_id)
            if removed is None:
                logger.warning("Consumable %s already gone for %s", item.instance_id, self.player_id)
