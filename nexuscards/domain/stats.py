"""Resolution of numeric stats from free-form card labels.

Cards carry their numbers as label/value pairs authored by hand, in Czech or
English, with values such as ``"+5"`` or ``"12 DMG"``. Every engine reads
them through :class:`StatResolver` so the alias lists live in exactly one
place (:class:`SynonymTable`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from .cards import Stat


class StatKey(str, Enum):
    HP = "hp"
    ATK = "atk"
    DEF = "def"
    DAMAGE = "damage"
    HEAL = "heal"
    ARMOR = "armor"
    FUEL = "fuel"
    GOLD = "gold"
    OXYGEN = "oxygen"


class MatchMode(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"


@dataclass(frozen=True, slots=True)
class SynonymGroup:
    aliases: tuple[str, ...]
    mode: MatchMode = MatchMode.EXACT
    default: int = 0

    def matches(self, label: str) -> bool:
        normalized = label.strip().upper()
        if self.mode is MatchMode.EXACT:
            return normalized in self.aliases
        return any(alias in normalized for alias in self.aliases)


def _default_groups() -> dict[StatKey, SynonymGroup]:
    return {
        StatKey.HP: SynonymGroup(("HP", "ZDRAVÍ"), MatchMode.EXACT, default=50),
        StatKey.ATK: SynonymGroup(("ATK",), MatchMode.EXACT, default=10),
        StatKey.DEF: SynonymGroup(("DEF",), MatchMode.EXACT, default=0),
        StatKey.DAMAGE: SynonymGroup(("DMG", "ATK", "POŠKOZENÍ"), MatchMode.CONTAINS),
        StatKey.HEAL: SynonymGroup(("HP", "ZDRAVÍ", "HEAL"), MatchMode.CONTAINS),
        StatKey.ARMOR: SynonymGroup(("ARMOR", "BRNĚNÍ", "ŠTÍT"), MatchMode.CONTAINS),
        StatKey.FUEL: SynonymGroup(("PALIVO", "FUEL"), MatchMode.CONTAINS),
        StatKey.GOLD: SynonymGroup(("GOLD", "ZLATO", "MINCE"), MatchMode.CONTAINS),
        StatKey.OXYGEN: SynonymGroup(("O2", "KYSLÍK"), MatchMode.CONTAINS),
    }


@dataclass(slots=True)
class SynonymTable:
    """Alias groups keyed by :class:`StatKey`."""

    groups: dict[StatKey, SynonymGroup] = field(default_factory=_default_groups)

    def group(self, key: StatKey) -> SynonymGroup:
        try:
            return self.groups[key]
        except KeyError as exc:
            raise KeyError(f"No synonyms configured for {key.value}") from exc

    def extend(self, key: StatKey, aliases: Iterable[str]) -> None:
        """Add ``aliases`` to the group of ``key`` in place."""
        current = self.group(key)
        extra = tuple(alias.strip().upper() for alias in aliases)
        self.groups[key] = SynonymGroup(current.aliases + extra, current.mode, current.default)

    def with_aliases(self, key: StatKey, aliases: Iterable[str]) -> "SynonymTable":
        """Return a copy where ``key`` also matches ``aliases``."""
        groups = dict(self.groups)
        current = groups[key]
        extra = tuple(alias.strip().upper() for alias in aliases)
        groups[key] = SynonymGroup(current.aliases + extra, current.mode, current.default)
        return SynonymTable(groups=groups)


_INT_PATTERN = re.compile(r"[+-]?\d+")


def parse_stat_value(value: str | int | float | None) -> int | None:
    """Return the first signed integer in ``value`` or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _INT_PATTERN.search(str(value))
    if not match:
        return None
    return int(match.group(0))


class StatResolver:
    """Look up stats on cards through a shared synonym table."""

    def __init__(self, synonyms: SynonymTable | None = None) -> None:
        self._synonyms = synonyms or SynonymTable()

    @property
    def synonyms(self) -> SynonymTable:
        return self._synonyms

    def find(self, stats: Sequence[Stat], key: StatKey) -> Stat | None:
        group = self._synonyms.group(key)
        for stat in stats:
            if group.matches(str(stat.label)):
                return stat
        return None

    def resolve_int(self, stats: Sequence[Stat], key: StatKey, default: int | None = None) -> int:
        fallback = self._synonyms.group(key).default if default is None else default
        stat = self.find(stats, key)
        if stat is None:
            return fallback
        parsed = parse_stat_value(stat.value)
        return fallback if parsed is None else parsed

    def classify(self, label: str, keys: Sequence[StatKey]) -> StatKey | None:
        """Return the first of ``keys`` whose group matches ``label``."""
        for key in keys:
            if self._synonyms.group(key).matches(label):
                return key
        return None


def set_stat(stats: Sequence[Stat], label: str, value: str | int) -> tuple[Stat, ...]:
    """Replace the entry with exactly ``label`` (if any) and append the new value."""
    kept = tuple(stat for stat in stats if stat.label != label)
    return kept + (Stat(label=label, value=value),)

