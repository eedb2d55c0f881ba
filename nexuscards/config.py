"""Configuration models for nexuscards."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Literal, Mapping


StorageBackend = Literal["memory", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


def _default_flee_chances() -> dict[str, int]:
    # Live combat table. The authoring preview used Epic=30 / Rare=50.
    return {"Legendary": 10, "Epic": 40, "Rare": 60, "Common": 80}


@dataclass(slots=True)
class StorageConfig:
    """Configure how player state and transactions are persisted."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./nexus.db"
        return None


@dataclass(slots=True)
class DiceRules:
    animation_frames: int = 10
    frame_interval: float = 0.05


@dataclass(slots=True)
class CombatRules:
    """Numbers driving combat sessions."""

    flee_chances: Mapping[str, int] = field(default_factory=_default_flee_chances)
    default_flee_chance: int = 80
    default_enemy_hp: int = 50
    default_enemy_atk: int = 10
    default_enemy_def: int = 0
    critical_total: int = 12
    miss_total: int = 2
    counter_delay: float = 1.0
    flee_delay: float = 1.5

    def flee_chance(self, rarity: str | None) -> int:
        key = (rarity or "Common").strip().lower()
        for name, chance in self.flee_chances.items():
            if name.lower() == key:
                return int(chance)
        return self.default_flee_chance


@dataclass(slots=True)
class TrapRules:
    default_difficulty: int = 10
    default_damage: int = 20
    fail_damage_delay: float = 0.5


@dataclass(slots=True)
class CraftingRules:
    tick_ms: int = 50
    default_duration_seconds: float = 10.0


@dataclass(slots=True)
class TravelRules:
    fuel_cost: int = 20


@dataclass(slots=True)
class PlayerLimits:
    """Bounds and starting values for player vitals."""

    max_hp: int = 100
    max_fuel: int = 100
    max_oxygen: int = 100
    starting_hp: int = 100
    starting_armor: int = 0
    starting_gold: int = 100
    starting_fuel: int = 100
    starting_oxygen: int = 100


@dataclass(slots=True)
class NexusConfig:
    """Top-level configuration container."""

    bot_token: str = ""
    storage: StorageConfig = field(default_factory=StorageConfig)
    dice: DiceRules = field(default_factory=DiceRules)
    combat: CombatRules = field(default_factory=CombatRules)
    traps: TrapRules = field(default_factory=TrapRules)
    crafting: CraftingRules = field(default_factory=CraftingRules)
    travel: TravelRules = field(default_factory=TravelRules)
    limits: PlayerLimits = field(default_factory=PlayerLimits)
    rng_seed: int | None = None

    @classmethod
    def instant(cls, **kwargs) -> "NexusConfig":
        """Config with every pacing delay set to zero (tests, simulations)."""
        config = cls(**kwargs)
        config.dice.frame_interval = 0.0
        config.combat.counter_delay = 0.0
        config.combat.flee_delay = 0.0
        config.traps.fail_damage_delay = 0.0
        return config

    @classmethod
    def from_env(cls) -> "NexusConfig":
        """Create config from environment variables prefixed with NEXUS_."""
        prefix = "NEXUS_"
        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
        )

        dice = DiceRules(
            animation_frames=int(os.getenv(f"{prefix}DICE_FRAMES", "10")),
            frame_interval=float(os.getenv(f"{prefix}DICE_FRAME_INTERVAL", "0.05")),
        )

        combat = CombatRules(
            default_enemy_hp=int(os.getenv(f"{prefix}COMBAT_DEFAULT_HP", "50")),
            default_enemy_atk=int(os.getenv(f"{prefix}COMBAT_DEFAULT_ATK", "10")),
            default_enemy_def=int(os.getenv(f"{prefix}COMBAT_DEFAULT_DEF", "0")),
            counter_delay=float(os.getenv(f"{prefix}COMBAT_COUNTER_DELAY", "1.0")),
            flee_delay=float(os.getenv(f"{prefix}COMBAT_FLEE_DELAY", "1.5")),
        )
        flee_chances = _parse_flee_chances(os.getenv(f"{prefix}COMBAT_FLEE_CHANCES"))
        if flee_chances:
            combat.flee_chances = flee_chances

        traps = TrapRules(
            default_difficulty=int(os.getenv(f"{prefix}TRAP_DEFAULT_DIFFICULTY", "10")),
            default_damage=int(os.getenv(f"{prefix}TRAP_DEFAULT_DAMAGE", "20")),
            fail_damage_delay=float(os.getenv(f"{prefix}TRAP_FAIL_DELAY", "0.5")),
        )

        crafting = CraftingRules(
            tick_ms=int(os.getenv(f"{prefix}CRAFTING_TICK_MS", "50")),
            default_duration_seconds=float(os.getenv(f"{prefix}CRAFTING_DEFAULT_SECONDS", "10")),
        )

        return cls(
            bot_token=os.getenv(f"{prefix}BOT_TOKEN", ""),
            storage=storage,
            dice=dice,
            combat=combat,
            traps=traps,
            crafting=crafting,
            travel=TravelRules(fuel_cost=int(os.getenv(f"{prefix}TRAVEL_FUEL_COST", "20"))),
            limits=PlayerLimits(max_hp=int(os.getenv(f"{prefix}MAX_HP", "100"))),
            rng_seed=(
                int(os.getenv(f"{prefix}RNG_SEED")) if os.getenv(f"{prefix}RNG_SEED") else None
            ),
        )


def _parse_flee_chances(raw: str | None) -> Mapping[str, int]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON for NEXUS_COMBAT_FLEE_CHANCES") from exc
    if not isinstance(data, dict):
        raise ValueError("NEXUS_COMBAT_FLEE_CHANCES must be a JSON object")
    return {str(k): int(v) for k, v in data.items()}
