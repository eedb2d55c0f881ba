"""Runtime registries for cards and stat synonyms."""

from __future__ import annotations

from typing import Iterable

from .domain.cards import Card, CardCatalog
from .domain.stats import StatKey, StatResolver, SynonymTable


class CardRegistry:
    """Facade around CardCatalog with chainable API."""

    def __init__(self) -> None:
        self.catalog = CardCatalog()

    def card(self, card: Card) -> "CardRegistry":
        self.catalog.register_card(card)
        return self

    def cards(self, cards: Iterable[Card]) -> "CardRegistry":
        self.catalog.register_cards(cards)
        return self


class SynonymRegistry:
    """Extend the shared stat alias table; every session sees the change."""

    def __init__(self, table: SynonymTable | None = None) -> None:
        self.table = table or SynonymTable()
        self.resolver = StatResolver(self.table)

    def alias(self, key: StatKey, *aliases: str) -> "SynonymRegistry":
        self.table.extend(key, aliases)
        return self


__all__ = [
    "CardRegistry",
    "SynonymRegistry",
]
