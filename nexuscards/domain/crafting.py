"""Blueprint crafting: resource checks, a timed job and the final exchange."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Sequence

from ..config import CraftingRules
from .cards import Card
from .events import CRAFT_COMPLETED, EventBus
from .exceptions import ActionNotPermitted, InsufficientResources, SessionBusy
from .feedback import FeedbackSink, NullFeedback
from .inventory import InventoryItem, resource_totals
from .player import PlayerService

logger = logging.getLogger(__name__)

InventoryProvider = Callable[[], Awaitable[Sequence[InventoryItem]]]
CompletionHandler = Callable[[Card], Awaitable[object]]
Sleeper = Callable[[float], Awaitable[None]]


def check_can_craft(inventory: Iterable[InventoryItem], blueprint: Card) -> bool:
    recipe = blueprint.crafting_recipe
    if recipe is None or not recipe.required_resources:
        return True
    totals = resource_totals(inventory)
    return all(totals.get(req.resource_name, 0) >= req.amount for req in recipe.required_resources)


def missing_resources(inventory: Iterable[InventoryItem], blueprint: Card) -> dict[str, int]:
    recipe = blueprint.crafting_recipe
    if recipe is None:
        return {}
    totals = resource_totals(inventory)
    return {
        req.resource_name: req.amount - totals.get(req.resource_name, 0)
        for req in recipe.required_resources
        if totals.get(req.resource_name, 0) < req.amount
    }


def crafting_duration(blueprint: Card, rules: CraftingRules) -> float:
    recipe = blueprint.crafting_recipe
    seconds = recipe.crafting_time_seconds if recipe else None
    return float(seconds) if seconds and seconds > 0 else rules.default_duration_seconds


class CraftingStation:
    """Progress machine for one crafting job at a time.

    ``advance`` performs one tick and is what tests drive; ``run`` loops it
    on the configured interval.
    """

    def __init__(
        self,
        inventory_provider: InventoryProvider,
        on_complete: CompletionHandler,
        *,
        rules: CraftingRules | None = None,
        feedback: FeedbackSink | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._inventory = inventory_provider
        self._on_complete = on_complete
        self._rules = rules or CraftingRules()
        self._feedback = feedback or NullFeedback()
        self._sleep = sleep
        self.selected: Card | None = None
        self.is_crafting = False
        self.progress = 0.0
        self.time_left = 0.0
        self.duration = 0.0
        self._elapsed_ms = 0

    def select(self, blueprint: Card) -> None:
        if self.is_crafting:
            raise SessionBusy("Cannot change blueprint while crafting")
        if not blueprint.is_blueprint:
            raise ActionNotPermitted(f"{blueprint.card_id} has no enabled recipe")
        self.selected = blueprint
        self.progress = 0.0
        self.time_left = 0.0

    async def can_craft(self) -> bool:
        if self.selected is None:
            return False
        return check_can_craft(await self._inventory(), self.selected)

    async def start(self) -> None:
        if self.is_crafting:
            raise SessionBusy("Crafting already in progress")
        if self.selected is None:
            raise ActionNotPermitted("No blueprint selected")
        inventory = await self._inventory()
        if not check_can_craft(inventory, self.selected):
            self._feedback.play("error")
            raise InsufficientResources(
                f"Missing resources: {missing_resources(inventory, self.selected)}"
            )
        self.is_crafting = True
        self.duration = crafting_duration(self.selected, self._rules)
        self.progress = 0.0
        self.time_left = self.duration
        self._elapsed_ms = 0
        self._feedback.play("scan")
        self._feedback.vibrate([50, 100, 50])

    async def advance(self, ms: int | None = None) -> bool:
        """Move the job forward by one tick; return True once it completed."""
        if not self.is_crafting or self.selected is None:
            return False
        self._elapsed_ms += self._rules.tick_ms if ms is None else ms
        total_ms = self.duration * 1000
        self.progress = min(100.0, self._elapsed_ms / total_ms * 100)
        self.time_left = max(0.0, self.duration - self._elapsed_ms / 1000)
        if self._elapsed_ms < total_ms:
            return False
        await self._finish()
        return True

    async def run(self) -> None:
        interval = self._rules.tick_ms / 1000
        while self.is_crafting:
            await self._sleep(interval)
            await self.advance()

    async def _finish(self) -> None:
        blueprint = self.selected
        # Cleared before the callback so the completion fires exactly once.
        self.is_crafting = False
        try:
            await self._on_complete(blueprint)
        finally:
            self.progress = 0.0
            self.time_left = 0.0
            self.selected = None
            self._elapsed_ms = 0
        self._feedback.play("success")
        self._feedback.vibrate([50, 50, 50])


class CraftingService:
    """Deduct blueprint resources and hand out the crafted item."""

    def __init__(self, players: PlayerService, *, event_bus: EventBus | None = None) -> None:
        self._players = players
        self._event_bus = event_bus

    async def complete(self, player_id: str, blueprint: Card) -> InventoryItem:
        store = self._players.store
        record = await store.get_or_create(player_id)
        version = record.version
        if not check_can_craft(record.inventory, blueprint):
            raise InsufficientResources(
                f"Missing resources: {missing_resources(record.inventory, blueprint)}"
            )

        recipe = blueprint.crafting_recipe
        inventory = [item.copy() for item in record.inventory]
        for req in recipe.required_resources if recipe else ():
            remaining = req.amount
            for item in inventory:
                if remaining == 0:
                    break
                if item.resource_name != req.resource_name or not item.resource_amount:
                    continue
                taken = min(remaining, item.resource_amount)
                item.resource_amount -= taken
                remaining -= taken
        # Emptied containers disappear from the inventory.
        inventory = [
            item for item in inventory if item.resource_name is None or item.resource_amount
        ]

        crafted = InventoryItem.from_card(blueprint)
        inventory.append(crafted)
        record.inventory = inventory
        await store.save(record, expected_version=version)

        logger.info("Player %s crafted %s", player_id, blueprint.card_id)
        if self._event_bus is not None:
            await self._event_bus.publish(
                CRAFT_COMPLETED,
                {"player_id": player_id, "card_id": blueprint.card_id, "item_id": crafted.instance_id},
            )
        return crafted
