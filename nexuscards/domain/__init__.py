"""Domain models and services."""

from .cards import Card, CardCatalog, CardType, PlayerClass, Rarity, Stat
from .dice import DiceRoll, DiceRoller
from .events import EventBus
from .exceptions import (
    ActionNotPermitted,
    InsufficientFuel,
    InsufficientGold,
    InsufficientResources,
    InvalidRoll,
    NexusError,
    PlanetComplete,
    SessionBusy,
    StaleRecord,
    TradeNotFound,
)
from .inventory import InventoryItem, StackedEntry, stack_inventory
from .stats import StatKey, StatResolver, SynonymTable
from .player import PlayerProfile, PlayerService, PlayerVitals
from .loot import LootClaim, LootOutcome, LootService
from .combat import CombatPerks, CombatSession, CombatStatus
from .traps import TrapSession, TrapStatus
from .planets import LandingTarget, PlanetService
from .trade import TradeService, TradeSession
from .crafting import CraftingService, CraftingStation, check_can_craft
from .dilemmas import DilemmaOutcome, DilemmaSession, DilemmaStatus
from .merchant import MerchantSession, PurchaseOutcome, Quote, SaleOutcome

__all__ = [
    "Card",
    "CardCatalog",
    "CardType",
    "PlayerClass",
    "Rarity",
    "Stat",
    "DiceRoll",
    "DiceRoller",
    "EventBus",
    "ActionNotPermitted",
    "InsufficientFuel",
    "InsufficientGold",
    "InsufficientResources",
    "InvalidRoll",
    "NexusError",
    "PlanetComplete",
    "SessionBusy",
    "StaleRecord",
    "TradeNotFound",
    "InventoryItem",
    "StackedEntry",
    "stack_inventory",
    "StatKey",
    "StatResolver",
    "SynonymTable",
    "PlayerProfile",
    "PlayerService",
    "PlayerVitals",
    "LootClaim",
    "LootOutcome",
    "LootService",
    "CombatPerks",
    "CombatSession",
    "CombatStatus",
    "TrapSession",
    "TrapStatus",
    "LandingTarget",
    "PlanetService",
    "TradeService",
    "TradeSession",
    "CraftingService",
    "CraftingStation",
    "check_can_craft",
    "DilemmaOutcome",
    "DilemmaSession",
    "DilemmaStatus",
    "MerchantSession",
    "PurchaseOutcome",
    "Quote",
    "SaleOutcome",
]
