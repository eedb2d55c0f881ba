"""Merchant stock, class-adjusted prices, buying and selling."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from random import Random

from .cards import Card, CardCatalog, CardType, MerchantItemEntry, MerchantTradeConfig, PlayerClass
from .events import MERCHANT_PURCHASE, MERCHANT_SALE, EventBus
from .exceptions import ActionNotPermitted, InsufficientGold
from .feedback import FeedbackSink, NullFeedback
from .inventory import InventoryItem, find_item
from .player import PlayerService

logger = logging.getLogger(__name__)

DEFAULT_PRICE = 100
SALE_MULTIPLIER = 0.7
_HEALING_LABELS = ("HP", "HEAL", "LÉČENÍ", "ZDRAVÍ")


@dataclass(frozen=True, slots=True)
class Quote:
    card: Card
    entry: MerchantItemEntry
    base_price: int
    final_price: int
    discount: str | None
    on_sale: bool
    stock: int


@dataclass(frozen=True, slots=True)
class PurchaseOutcome:
    item: InventoryItem
    price: int
    bonus_item: InventoryItem | None = None


@dataclass(frozen=True, slots=True)
class SaleOutcome:
    item: InventoryItem
    price: int


def _is_healing(card: Card) -> bool:
    return any(
        keyword in str(stat.label).upper() for stat in card.stats for keyword in _HEALING_LABELS
    )


def _apply_discount(price: int, percent: int) -> int:
    return math.floor(price * (100 - percent) / 100)


def final_price(
    card: Card,
    base_price: int,
    player_class: PlayerClass | None,
    config: MerchantTradeConfig,
    *,
    on_sale: bool = False,
) -> tuple[int, str | None]:
    """Price after the flash sale and the class discount, never below 1.

    Returns the price and the first discount that applied (``SALE`` or ``CLASS``).
    """
    price = base_price
    discount: str | None = None
    if on_sale:
        price = math.floor(base_price * SALE_MULTIPLIER)
        discount = "SALE"

    percent = 0
    if player_class is PlayerClass.WARRIOR:
        percent = config.warrior_discount
    elif player_class is PlayerClass.CLERIC and _is_healing(card):
        percent = config.cleric_discount
    elif player_class is PlayerClass.MAGE and (card.is_consumable or card.type is CardType.ITEM):
        percent = config.mage_discount
    if percent:
        price = _apply_discount(price, percent)
        discount = discount or "CLASS"
    return max(1, price), discount


class MerchantSession:
    """A visit to one merchant; stock and flash sales live for the visit."""

    def __init__(
        self,
        card: Card,
        player_id: str,
        player_class: PlayerClass | None,
        players: PlayerService,
        catalog: CardCatalog,
        *,
        rng: Random | None = None,
        feedback: FeedbackSink | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.card = card
        self.player_id = player_id
        self.player_class = player_class
        self.config = card.trade_config or MerchantTradeConfig()
        self._players = players
        self._catalog = catalog
        self._rng = rng or Random()
        self._feedback = feedback or NullFeedback()
        self._event_bus = event_bus
        self._entries = {entry.card_id: entry for entry in card.merchant_items}
        self.stock = {entry.card_id: entry.stock for entry in card.merchant_items}
        self.sales = {
            entry.card_id: self._rng.random() * 100 <= entry.sale_chance
            for entry in card.merchant_items
            if entry.sale_chance > 0
        }

    def _resolve(self, card_id: str) -> Card | None:
        card = self._catalog.find_card(card_id)
        if card is not None:
            return card
        # Generated cards carry a "__suffix"; stock entries name the base id.
        for candidate in self._catalog.iter_cards():
            if candidate.card_id.split("__")[0] == card_id:
                return candidate
        return None

    def quote(self, card_id: str) -> Quote:
        entry = self._entries.get(card_id)
        if entry is None:
            raise ActionNotPermitted(f"Merchant {self.card.card_id} does not stock {card_id}")
        card = self._resolve(card_id)
        if card is None:
            raise ActionNotPermitted(f"Stocked card {card_id} is missing from the catalog")
        base = entry.price if entry.price else card.price
        base_price = base if base is not None else DEFAULT_PRICE
        on_sale = self.sales.get(card_id, False)
        price, discount = final_price(
            card, base_price, self.player_class, self.config, on_sale=on_sale
        )
        return Quote(
            card=card,
            entry=entry,
            base_price=base_price,
            final_price=price,
            discount=discount,
            on_sale=on_sale,
            stock=self.stock[card_id],
        )

    def offers(self) -> list[Quote]:
        quotes = []
        for card_id in self._entries:
            try:
                quotes.append(self.quote(card_id))
            except ActionNotPermitted:
                logger.warning("Merchant %s could not resolve %s", self.card.card_id, card_id)
        return quotes

    async def buy(self, card_id: str) -> PurchaseOutcome:
        quote = self.quote(card_id)
        if self.stock[card_id] <= 0:
            raise ActionNotPermitted(f"{quote.card.title} is sold out")

        # Reserve the unit before awaiting so concurrent buyers cannot oversell.
        self.stock[card_id] -= 1
        try:
            item = await self._players.purchase(self.player_id, quote.card, quote.final_price)
        except InsufficientGold:
            self.stock[card_id] += 1
            self._feedback.play("error")
            raise

        bonus = None
        if (
            self.player_class is PlayerClass.ROGUE
            and self.stock[card_id] >= 1
            and self._rng.random() * 100 < self.config.rogue_steal_chance
        ):
            self.stock[card_id] -= 1
            bonus = await self._players.add_item(self.player_id, quote.card)
            logger.info("Player %s lifted an extra %s", self.player_id, card_id)
        self._feedback.play("success")

        logger.info(
            "Player %s bought %s for %d gold", self.player_id, card_id, quote.final_price
        )
        await self._publish(
            MERCHANT_PURCHASE,
            {
                "player_id": self.player_id,
                "merchant_id": self.card.card_id,
                "card_id": card_id,
                "price": quote.final_price,
                "bonus": bonus.instance_id if bonus else None,
            },
        )
        return PurchaseOutcome(item=item, price=quote.final_price, bonus_item=bonus)

    def sell_offer(self, item: InventoryItem) -> int | None:
        """Price the merchant pays for ``item``, or ``None`` when it is refused."""
        if not self.card.can_sell_to_merchant:
            return None
        entry = self._entries.get(item.card_id) or self._entries.get(item.card_id.split("__")[0])
        if entry is None or not entry.sell_price or entry.sell_price <= 0:
            return None
        return entry.sell_price

    async def sell(self, instance_id: str) -> SaleOutcome:
        if not self.card.can_sell_to_merchant:
            raise ActionNotPermitted(f"Merchant {self.card.card_id} does not buy items")
        profile = await self._players.fetch(self.player_id)
        item = find_item(profile.inventory, instance_id)
        if item is None:
            raise ActionNotPermitted(f"Item {instance_id} is not in the inventory")
        price = self.sell_offer(item)
        if price is None:
            self._feedback.play("error")
            raise ActionNotPermitted(f"Merchant is not interested in {item.title}")

        sold = await self._players.sell_item(self.player_id, instance_id, price)
        if sold is None:
            raise ActionNotPermitted(f"Item {instance_id} is not in the inventory")
        self._feedback.play("success")
        logger.info("Player %s sold %s for %d gold", self.player_id, instance_id, price)
        await self._publish(
            MERCHANT_SALE,
            {
                "player_id": self.player_id,
                "merchant_id": self.card.card_id,
                "item": instance_id,
                "price": price,
            },
        )
        return SaleOutcome(item=sold, price=price)

    async def _publish(self, topic: str, payload: dict) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(topic, payload)
