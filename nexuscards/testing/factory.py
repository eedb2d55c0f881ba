"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Iterable

from faker import Faker

from ..domain.cards import (
    Card,
    CardType,
    CombatConfig,
    CraftingRecipe,
    DilemmaOption,
    EnemyLoot,
    MerchantItemEntry,
    MerchantTradeConfig,
    PlanetConfig,
    Rarity,
    RequiredResource,
    ResourceConfig,
    Stat,
    TrapConfig,
)


@dataclass(slots=True)
class CardFactory:
    faker: Faker = field(default_factory=Faker)
    rng: Random = field(default_factory=Random)

    def _card_id(self, prefix: str) -> str:
        return f"{prefix}-{self.faker.unique.lexify(text='????').upper()}"

    def item(
        self,
        *stats: Stat,
        title: str | None = None,
        consumable: bool = False,
        price: int | None = None,
    ) -> Card:
        return Card(
            card_id=self._card_id("ITEM"),
            title=title or self.faker.word().title(),
            type=CardType.ITEM,
            description=self.faker.sentence(),
            stats=tuple(stats),
            is_consumable=consumable,
            price=price,
        )

    def enemy(
        self,
        *,
        hp: int | str | None = 50,
        atk: int | str | None = 10,
        defense: int | str | None = 0,
        rarity: Rarity | None = None,
        def_break_chance: float = 0.0,
        loot: EnemyLoot | None = None,
    ) -> Card:
        stats = []
        if hp is not None:
            stats.append(Stat("HP", hp))
        if atk is not None:
            stats.append(Stat("ATK", atk))
        if defense is not None:
            stats.append(Stat("DEF", defense))
        return Card(
            card_id=self._card_id("ENC"),
            title=self.faker.word().title(),
            type=CardType.ENCOUNTER,
            rarity=rarity or self.rng.choice(list(Rarity)),
            stats=tuple(stats),
            combat_config=CombatConfig(def_break_chance=def_break_chance) if def_break_chance else None,
            enemy_loot=loot,
        )

    def trap(self, **config) -> Card:
        return Card(
            card_id=self._card_id("TRAP"),
            title=self.faker.word().title(),
            type=CardType.TRAP,
            trap_config=TrapConfig(**config),
        )

    def resource(self, name: str, amount: int) -> Card:
        return Card(
            card_id=self._card_id("RES"),
            title=name,
            type=CardType.ITEM,
            resource_config=ResourceConfig(
                is_resource_container=True,
                resource_name=name,
                resource_amount=amount,
            ),
        )

    def blueprint(self, *requirements: tuple[str, int], seconds: float | None = None) -> Card:
        return Card(
            card_id=self._card_id("BP"),
            title=self.faker.word().title(),
            type=CardType.ITEM,
            crafting_recipe=CraftingRecipe(
                enabled=True,
                required_resources=tuple(RequiredResource(name, amount) for name, amount in requirements),
                crafting_time_seconds=seconds,
            ),
        )

    def planet(
        self,
        planet_id: str,
        phases: Iterable[str] = (),
        *,
        landing_event_id: str | None = None,
        landing_event_type: CardType = CardType.ENCOUNTER,
    ) -> Card:
        return Card(
            card_id=self._card_id("PLANET"),
            title=planet_id.title(),
            type=CardType.PLANET,
            planet_config=PlanetConfig(
                planet_id=planet_id,
                landing_event_type=landing_event_type,
                landing_event_id=landing_event_id,
                phases=tuple(phases),
            ),
        )

    def dilemma(self, *options: DilemmaOption) -> Card:
        return Card(
            card_id=self._card_id("DIL"),
            title=self.faker.sentence(nb_words=3),
            type=CardType.DILEMMA,
            dilemma_options=tuple(options),
        )

    def merchant(
        self,
        *entries: MerchantItemEntry,
        trade_config: MerchantTradeConfig | None = None,
        can_sell: bool = False,
    ) -> Card:
        return Card(
            card_id=self._card_id("MERCH"),
            title=self.faker.name(),
            type=CardType.MERCHANT,
            merchant_items=tuple(entries),
            trade_config=trade_config,
            can_sell_to_merchant=can_sell,
        )


@dataclass(slots=True)
class PlayerFactory:
    faker: Faker = field(default_factory=Faker)

    def identity(self) -> tuple[str, str]:
        return self.faker.unique.email(), self.faker.user_name()
