"""Card domain models and the catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence


class CardType(str, Enum):
    """Card kinds. Values are the tags stored in existing card records."""

    ITEM = "PŘEDMĚT"
    ENCOUNTER = "SETKÁNÍ"
    TRAP = "NÁSTRAHA"
    MERCHANT = "OBCHODNÍK"
    DILEMMA = "DILEMA"
    BOSS = "BOSS"
    SPACE_STATION = "VESMÍRNÁ_STANICE"
    PLANET = "PLANETA"

    @classmethod
    def parse(cls, raw: str) -> "CardType":
        """Accept either the stored tag or the enum name."""
        try:
            return cls(raw)
        except ValueError:
            return cls[str(raw).upper()]

    @property
    def is_combat(self) -> bool:
        return self in (CardType.ENCOUNTER, CardType.BOSS)


class Rarity(str, Enum):
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"

    @classmethod
    def parse(cls, raw: str | None) -> "Rarity":
        if not raw:
            return cls.COMMON
        lowered = str(raw).strip().lower()
        for rarity in cls:
            if rarity.value.lower() == lowered:
                return rarity
        raise ValueError(f"Unknown rarity {raw!r}")

    @property
    def rank(self) -> int:
        return _RARITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank < other.rank


_RARITY_ORDER = (Rarity.COMMON, Rarity.RARE, Rarity.EPIC, Rarity.LEGENDARY)


class PlayerClass(str, Enum):
    WARRIOR = "Válečník"
    MAGE = "Mág"
    ROGUE = "Zloděj"
    CLERIC = "Kněz"

    @classmethod
    def parse(cls, raw: str) -> "PlayerClass":
        try:
            return cls(raw)
        except ValueError:
            return cls[str(raw).upper()]


ANY_CLASS = "ANY"


@dataclass(frozen=True, slots=True)
class Stat:
    """Free-form label/value pair printed on a card."""

    label: str
    value: str | int


@dataclass(frozen=True, slots=True)
class TrapConfig:
    difficulty: int = 10
    damage: int = 20
    disarm_class: PlayerClass | str = ANY_CLASS
    success_message: str = "Trap disarmed."
    fail_message: str = "The trap springs!"
    trap_type: str = "TRAP"
    loot: tuple[Stat, ...] = ()


@dataclass(frozen=True, slots=True)
class CombatConfig:
    def_break_chance: float = 0.0


@dataclass(frozen=True, slots=True)
class EnemyLoot:
    loot_stats: tuple[Stat, ...] = ()
    gold_reward: int = 0
    drop_item_chance: float = 0.0
    drop_item_id: str | None = None


@dataclass(frozen=True, slots=True)
class ResourceConfig:
    is_resource_container: bool
    resource_name: str
    resource_amount: int = 1
    custom_label: str | None = None


@dataclass(frozen=True, slots=True)
class RequiredResource:
    resource_name: str
    amount: int


@dataclass(frozen=True, slots=True)
class CraftingRecipe:
    enabled: bool = True
    required_resources: tuple[RequiredResource, ...] = ()
    crafting_time_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class PlanetConfig:
    planet_id: str
    landing_event_type: CardType = CardType.ENCOUNTER
    landing_event_id: str | None = None
    phases: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StationConfig:
    fuel_reward: int = 0
    repair_amount: int = 0
    refill_o2: bool = False
    welcome_message: str = ""


@dataclass(frozen=True, slots=True)
class DilemmaOption:
    """One choice of a dilemma card.

    ``rewards`` and the legacy ``effect_type``/``effect_value`` pair apply on
    success; ``fail_damage`` is taken from HP on failure.
    """

    label: str
    success_chance: float = 100.0
    consequence_text: str = ""
    rewards: tuple[Stat, ...] = ()
    effect_type: str | None = None
    effect_value: int = 0
    fail_message: str = ""
    fail_damage: int = 0
    physical_instruction: str | None = None


@dataclass(frozen=True, slots=True)
class MerchantItemEntry:
    card_id: str
    stock: int
    price: int | None = None
    sell_price: int | None = None
    sale_chance: float = 0.0


@dataclass(frozen=True, slots=True)
class MerchantTradeConfig:
    """Class perks at a merchant, discounts in percent."""

    warrior_discount: int = 10
    cleric_discount: int = 45
    mage_discount: int = 25
    rogue_steal_chance: float = 30.0



@dataclass(frozen=True, slots=True)
class Card:
    """Authored template describing one game event or item."""

    card_id: str
    title: str
    type: CardType
    description: str = ""
    rarity: Rarity = Rarity.COMMON
    stats: tuple[Stat, ...] = ()
    flavor_text: str | None = None
    is_consumable: bool = False
    price: int | None = None
    trap_config: TrapConfig | None = None
    combat_config: CombatConfig | None = None
    enemy_loot: EnemyLoot | None = None
    resource_config: ResourceConfig | None = None
    crafting_recipe: CraftingRecipe | None = None
    planet_config: PlanetConfig | None = None
    station_config: StationConfig | None = None
    dilemma_options: tuple[DilemmaOption, ...] = ()
    merchant_items: tuple[MerchantItemEntry, ...] = ()
    trade_config: MerchantTradeConfig | None = None
    can_sell_to_merchant: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_resource_container(self) -> bool:
        return bool(self.resource_config and self.resource_config.is_resource_container)

    @property
    def is_blueprint(self) -> bool:
        return bool(self.crafting_recipe and self.crafting_recipe.enabled)


class CardCatalog:
    """Read-only lookup of authored cards."""

    def __init__(self) -> None:
        self._cards: dict[str, Card] = {}

    def register_card(self, card: Card) -> None:
        if card.card_id in self._cards:
            raise ValueError(f"Card {card.card_id} already registered")
        self._cards[card.card_id] = card

    def register_cards(self, cards: Iterable[Card]) -> None:
        for card in cards:
            self.register_card(card)

    def get_card(self, card_id: str) -> Card:
        try:
            return self._cards[card_id]
        except KeyError as exc:
            raise KeyError(f"Card {card_id} not found") from exc

    def find_card(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def iter_cards(self) -> Iterable[Card]:
        return self._cards.values()

    def cards_of_type(self, card_type: CardType) -> Sequence[Card]:
        return [card for card in self._cards.values() if card.type is card_type]

    def blueprints(self) -> Sequence[Card]:
        return [card for card in self._cards.values() if card.is_blueprint]
