"""Player-owned card instances and read-only projections over them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Sequence

from .cards import Card, CardType


@dataclass(slots=True)
class InventoryItem:
    """A card instance owned by exactly one player."""

    instance_id: str
    card: Card
    resource_amount: int | None = None
    planet_progress: int = 0

    @classmethod
    def from_card(cls, card: Card, *, instance_id: str | None = None) -> "InventoryItem":
        amount = card.resource_config.resource_amount if card.is_resource_container else None
        return cls(
            instance_id=instance_id or new_instance_id(card.card_id),
            card=card,
            resource_amount=amount,
        )

    @property
    def card_id(self) -> str:
        return self.card.card_id

    @property
    def title(self) -> str:
        return self.card.title

    @property
    def resource_name(self) -> str | None:
        if not self.card.is_resource_container:
            return None
        return self.card.resource_config.resource_name

    def copy(self) -> "InventoryItem":
        return replace(self)


def new_instance_id(card_id: str) -> str:
    return f"{card_id}__{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True, slots=True)
class StackedEntry:
    """One row of the grouped inventory view."""

    key: str
    representative: InventoryItem
    quantity: int
    resource_amount: int | None
    instance_ids: tuple[str, ...]


def stack_inventory(items: Sequence[InventoryItem]) -> list[StackedEntry]:
    """Group instances for display without touching storage.

    Resource containers group by resource name and sum their amounts;
    everything else groups by card id and counts copies.
    """
    order: list[str] = []
    rows: dict[str, list[InventoryItem]] = {}
    for item in items:
        resource = item.resource_name
        key = f"RES-{resource}" if resource is not None else item.card_id
        if key not in rows:
            rows[key] = []
            order.append(key)
        rows[key].append(item)

    entries: list[StackedEntry] = []
    for key in order:
        group = rows[key]
        is_resource = group[0].resource_name is not None
        entries.append(
            StackedEntry(
                key=key,
                representative=group[0],
                quantity=len(group),
                resource_amount=(
                    sum(item.resource_amount or 0 for item in group) if is_resource else None
                ),
                instance_ids=tuple(item.instance_id for item in group),
            )
        )
    return entries


def resource_totals(items: Iterable[InventoryItem]) -> Mapping[str, int]:
    totals: dict[str, int] = {}
    for item in items:
        name = item.resource_name
        if name is None:
            continue
        totals[name] = totals.get(name, 0) + (item.resource_amount or 0)
    return totals


def find_item(items: Sequence[InventoryItem], instance_id: str) -> InventoryItem | None:
    for item in items:
        if item.instance_id == instance_id:
            return item
    return None


def combat_usable(items: Sequence[InventoryItem]) -> list[InventoryItem]:
    """Items that may be used from inside a combat session."""
    return [
        item
        for item in items
        if not item.card.is_resource_container and item.card.type is CardType.ITEM
    ]


def planet_items(items: Sequence[InventoryItem]) -> list[InventoryItem]:
    return [
        item
        for item in items
        if item.card.type is CardType.PLANET and item.card.planet_config is not None
    ]
