"""Top level application object for nexuscards."""

from __future__ import annotations

import asyncio
from functools import partial
from random import Random
from typing import Any, Awaitable, Callable, Sequence

from .config import NexusConfig
from .domain.cards import Card
from .domain.combat import CombatPerks, CombatSession
from .domain.crafting import CraftingService, CraftingStation
from .domain.dice import DiceRoller
from .domain.dilemmas import DilemmaSession
from .domain.events import EventBus
from .domain.feedback import FeedbackSink, NullFeedback
from .domain.inventory import InventoryItem
from .domain.loot import LootClaim, LootService
from .domain.merchant import MerchantSession
from .domain.planets import PlanetService
from .domain.player import PlayerService, PlayerVitals, seed_record
from .domain.trade import TradeService
from .domain.traps import TrapSession
from .registry import CardRegistry, SynonymRegistry
from .storage.base import PlayerStore, TransactionStore
from .storage.memory import InMemoryPlayerStore, InMemoryTransactionStore
from .storage.sqlalchemy import AsyncSQLAlchemyStorage

Sleeper = Callable[[float], Awaitable[None]]


class GameApp:
    """Central dependency container used by the bot shell, tools and tests."""

    def __init__(
        self,
        config: NexusConfig,
        *,
        player_store: PlayerStore | None = None,
        transaction_store: TransactionStore | None = None,
        event_bus: EventBus | None = None,
        rng: Random | None = None,
        feedback: FeedbackSink | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.cards = CardRegistry()
        self.synonyms = SynonymRegistry()
        self.feedback = feedback or NullFeedback()
        self._sleep = sleep

        self._rng = rng or (Random(config.rng_seed) if config.rng_seed is not None else Random())

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        self.player_store, self.transaction_store = self._wire_storage(
            player_store, transaction_store
        )

        self.player_service = PlayerService(
            self.player_store, limits=config.limits, catalog=self.cards.catalog
        )
        self.loot_service = LootService(
            self.player_service, self.synonyms.resolver, event_bus=self.event_bus
        )
        self.trade_service = TradeService(self.player_store, self.transaction_store, self.event_bus)
        self.planet_service = PlanetService(
            self.player_service,
            self.cards.catalog,
            rules=config.travel,
            rng=self._rng,
            event_bus=self.event_bus,
        )
        self.crafting_service = CraftingService(self.player_service, event_bus=self.event_bus)

    def _wire_storage(
        self,
        player_store: PlayerStore | None,
        transaction_store: TransactionStore | None,
    ) -> tuple[PlayerStore, TransactionStore]:
        if player_store and transaction_store:
            return player_store, transaction_store

        backend = self.config.storage.backend
        if backend == "memory":
            return (
                player_store or InMemoryPlayerStore(seed=partial(seed_record, self.config.limits)),
                transaction_store or InMemoryTransactionStore(),
            )
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(dsn, echo=self.config.storage.echo_sql)
            self._sqlalchemy_storage = storage
            return (
                player_store or storage.player_store(seed=partial(seed_record, self.config.limits)),
                transaction_store or storage.transaction_store(),
            )
        raise ValueError(f"Unsupported storage backend {backend}")

    @property
    def rng(self) -> Random:
        return self._rng

    def dice(self) -> DiceRoller:
        return DiceRoller(self.config.dice, rng=self._rng, sleep=self._sleep)

    def _resolve_card(self, card: Card | str) -> Card:
        return card if isinstance(card, Card) else self.cards.catalog.get_card(card)

    async def start_combat(
        self,
        player_id: str,
        card: Card | str,
        *,
        perks: CombatPerks | None = None,
    ) -> CombatSession:
        session = CombatSession(
            self._resolve_card(card),
            PlayerVitals(self.player_service, player_id),
            dice=self.dice(),
            rules=self.config.combat,
            rng=self._rng,
            resolver=self.synonyms.resolver,
            feedback=self.feedback,
            perks=perks,
            loot=LootClaim(self.loot_service, player_id),
            catalog=self.cards.catalog,
            event_bus=self.event_bus,
            player_id=player_id,
            sleep=self._sleep,
        )
        await session.start()
        return session

    async def start_trap(self, player_id: str, card: Card | str) -> TrapSession:
        profile = await self.player_service.fetch(player_id)
        return TrapSession(
            self._resolve_card(card),
            profile.player_class,
            PlayerVitals(self.player_service, player_id),
            dice=self.dice(),
            rules=self.config.traps,
            feedback=self.feedback,
            loot=LootClaim(self.loot_service, player_id),
            event_bus=self.event_bus,
            player_id=player_id,
            sleep=self._sleep,
        )

    def start_dilemma(self, player_id: str, card: Card | str) -> DilemmaSession:
        return DilemmaSession(
            self._resolve_card(card),
            player_id,
            self.player_service,
            self.loot_service,
            rng=self._rng,
            feedback=self.feedback,
            event_bus=self.event_bus,
        )

    async def open_merchant(self, player_id: str, card: Card | str) -> MerchantSession:
        profile = await self.player_service.fetch(player_id)
        return MerchantSession(
            self._resolve_card(card),
            player_id,
            profile.player_class,
            self.player_service,
            self.cards.catalog,
            rng=self._rng,
            feedback=self.feedback,
            event_bus=self.event_bus,
        )

    def open_crafting_station(self, player_id: str) -> CraftingStation:
        async def inventory() -> Sequence[InventoryItem]:
            profile = await self.player_service.fetch(player_id)
            return profile.inventory

        return CraftingStation(
            inventory,
            partial(self.crafting_service.complete, player_id),
            rules=self.config.crafting,
            feedback=self.feedback,
            sleep=self._sleep,
        )

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "cards": [card.card_id for card in self.cards.catalog.iter_cards()],
            "blueprints": [card.card_id for card in self.cards.catalog.blueprints()],
            "flee_chances": dict(self.config.combat.flee_chances),
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def close(self) -> None:
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
