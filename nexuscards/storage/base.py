"""Storage abstractions used by the nexuscards services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol, Sequence

from ..domain.cards import PlayerClass
from ..domain.inventory import InventoryItem


class PlayerStat(str, Enum):
    HP = "hp"
    ARMOR = "armor"
    GOLD = "gold"
    FUEL = "fuel"
    OXYGEN = "oxygen"


@dataclass(slots=True)
class PlayerRecord:
    player_id: str
    nickname: str | None = None
    player_class: PlayerClass | None = None
    stats: dict[str, int] = field(default_factory=dict)
    inventory: list[InventoryItem] = field(default_factory=list)
    version: int = 0

    def stat(self, stat: PlayerStat) -> int:
        return self.stats.get(stat.value, 0)


@dataclass(slots=True)
class TradedItem:
    original_owner: str
    item_id: str | None
    item_title: str | None


@dataclass(slots=True)
class TransactionRecord:
    transaction_id: str
    room_id: str
    timestamp: datetime
    participants: Sequence[tuple[str, str | None]]
    items: Sequence[TradedItem]
    status: str = "COMPLETED"


class PlayerStore(Protocol):
    async def get_or_create(
        self, player_id: str, nickname: str | None = None
    ) -> PlayerRecord:
        """Return a detached copy of the stored record, creating it when missing."""
        ...

    async def save(self, record: PlayerRecord, *, expected_version: int | None = None) -> None:
        """Persist ``record`` and bump its version.

        With ``expected_version`` the write only succeeds when the stored
        version still matches, otherwise :class:`StaleRecord` is raised.
        """
        ...


class TransactionStore(Protocol):
    async def add_record(self, record: TransactionRecord) -> None:
        ...

    async def recent_for_player(
        self, player_id: str, limit: int = 20
    ) -> Sequence[TransactionRecord]:
        ...
