"""Planet phase tracking and travel."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from random import Random

from ..config import TravelRules
from ..storage.base import PlayerStat
from .cards import Card, CardCatalog
from .events import PLANET_PROGRESSED, EventBus
from .exceptions import ActionNotPermitted, InsufficientFuel, PlanetComplete
from .inventory import InventoryItem, find_item, planet_items
from .player import PlayerService

logger = logging.getLogger(__name__)


def _phases(item: InventoryItem) -> tuple[str, ...]:
    config = item.card.planet_config
    return config.phases if config else ()


def next_phase_event(item: InventoryItem) -> str | None:
    phases = _phases(item)
    if item.planet_progress < len(phases):
        return phases[item.planet_progress]
    return None


def is_complete(item: InventoryItem) -> bool:
    phases = _phases(item)
    # Cards without phases use the legacy single landing event and never complete.
    return bool(phases) and item.planet_progress >= len(phases)


def advance(item: InventoryItem) -> InventoryItem:
    """Return a copy with progress moved forward by one phase."""
    phases = _phases(item)
    if not phases:
        return item.copy()
    if is_complete(item):
        raise PlanetComplete(f"Planet {item.card.planet_config.planet_id} is already explored")
    return replace(item, planet_progress=min(len(phases), item.planet_progress + 1))


class LandingSource(str, Enum):
    PHASE = "phase"
    LANDING_EVENT = "landing_event"
    RANDOM = "random"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class LandingTarget:
    nav_item_id: str
    card: Card | None
    source: LandingSource
    phase_index: int | None = None
    fuel_left: int = 0


class PlanetService:
    def __init__(
        self,
        players: PlayerService,
        catalog: CardCatalog,
        *,
        rules: TravelRules | None = None,
        rng: Random | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._players = players
        self._catalog = catalog
        self._rules = rules or TravelRules()
        self._rng = rng or Random()
        self._event_bus = event_bus

    async def nav_items(self, player_id: str) -> list[InventoryItem]:
        profile = await self._players.fetch(player_id)
        return planet_items(profile.inventory)

    async def travel(self, player_id: str, planet_id: str) -> LandingTarget:
        nav = await self._nav_item(player_id, planet_id)
        if is_complete(nav):
            raise PlanetComplete(f"Planet {planet_id} is already explored")

        cost = self._rules.fuel_cost
        profile = await self._players.fetch(player_id)
        fuel = profile.stats.get(PlayerStat.FUEL.value, 0)
        if fuel < cost:
            raise InsufficientFuel(fuel, cost)
        fuel_left = await self._players.adjust_stat(player_id, PlayerStat.FUEL, -cost)

        target = self._landing_target(nav)
        logger.info(
            "Player %s landed on %s (%s)", player_id, planet_id, target.source.value
        )
        return replace(target, fuel_left=fuel_left)

    def _landing_target(self, nav: InventoryItem) -> LandingTarget:
        config = nav.card.planet_config
        phase_id = next_phase_event(nav)
        if phase_id is not None:
            card = self._catalog.find_card(phase_id)
            if card is not None:
                return LandingTarget(nav.instance_id, card, LandingSource.PHASE, nav.planet_progress)
            logger.warning("Phase card %s missing from catalog", phase_id)

        if config.landing_event_id:
            card = self._catalog.find_card(config.landing_event_id)
            if card is not None:
                return LandingTarget(nav.instance_id, card, LandingSource.LANDING_EVENT)

        candidates = list(self._catalog.cards_of_type(config.landing_event_type))
        if candidates:
            return LandingTarget(nav.instance_id, self._rng.choice(candidates), LandingSource.RANDOM)
        return LandingTarget(nav.instance_id, None, LandingSource.NONE)

    async def complete_phase(self, player_id: str, nav_item_id: str) -> InventoryItem:
        profile = await self._players.fetch(player_id)
        nav = find_item(profile.inventory, nav_item_id)
        if nav is None or nav.card.planet_config is None:
            raise ActionNotPermitted(f"Navigation item {nav_item_id} not found")
        updated = advance(nav)
        if updated.planet_progress == nav.planet_progress:
            return updated
        await self._players.update_item(player_id, updated)
        logger.info(
            "Planet %s progress %d/%d for %s",
            nav.card.planet_config.planet_id,
            updated.planet_progress,
            len(nav.card.planet_config.phases),
            player_id,
        )
        if self._event_bus is not None:
            await self._event_bus.publish(
                PLANET_PROGRESSED,
                {
                    "player_id": player_id,
                    "planet_id": nav.card.planet_config.planet_id,
                    "progress": updated.planet_progress,
                    "complete": is_complete(updated),
                },
            )
        return updated

    async def _nav_item(self, player_id: str, planet_id: str) -> InventoryItem:
        for item in await self.nav_items(player_id):
            if item.card.planet_config.planet_id == planet_id:
                return item
        raise ActionNotPermitted(f"No navigation data for planet {planet_id}")
