"""Dice-driven combat against a single enemy card.

A session is created per encounter. The player attacks with a two-d6 roll
(virtual or entered by hand), the enemy answers with a counter-attack that
hits armor before HP, and the player may try to flee exactly once. After a
victory the enemy loot can be claimed exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import Awaitable, Callable, Iterable, Mapping, Protocol

from ..config import CombatRules
from .cards import Card, CardCatalog, Stat
from .dice import DiceRoll, DiceRoller
from .events import COMBAT_FLED, COMBAT_VICTORY, EventBus
from .exceptions import ActionNotPermitted, SessionBusy
from .feedback import FeedbackSink, NullFeedback
from .inventory import InventoryItem
from .loot import LootClaim, LootOutcome
from .stats import StatKey, StatResolver, parse_stat_value

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class Vitals(Protocol):
    """Callbacks through which a session reads and changes player vitals."""

    async def current_armor(self) -> int: ...

    async def on_player_damage(self, delta: int) -> None: ...

    async def on_armor_change(self, delta: int) -> None: ...


class CombatStatus(str, Enum):
    ACTIVE = "active"
    VICTORY = "victory"
    FLED = "fled"
    CLOSED = "closed"


class LogTag(str, Enum):
    INFO = "INFO"
    CRIT = "CRIT"
    DEF_BREAK = "DEF_BREAK"
    HIT = "HIT"
    MISS = "MISS"
    ITEM = "ITEM"
    COUNTER = "COUNTER"
    ABSORB = "ABSORB"
    FLEE = "FLEE"
    VICTORY = "VICTORY"


@dataclass(frozen=True, slots=True)
class CombatLogEntry:
    tag: LogTag
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class CombatPerks:
    flat_damage: int = 0
    armor_bonus: int = 0

    @classmethod
    def from_perks(cls, perks: Iterable[Mapping[str, object]]) -> "CombatPerks":
        """Sum ``combat`` perk modifiers of a character sheet."""
        flat_damage = 0
        armor_bonus = 0
        for perk in perks:
            effect = perk.get("effect") or {}
            if not isinstance(effect, Mapping) or effect.get("condition") != "combat":
                continue
            modifier = int(effect.get("modifier") or 0)
            if effect.get("stat") == "damage":
                flat_damage += modifier
            elif effect.get("stat") == "armor":
                armor_bonus += modifier
        return cls(flat_damage=flat_damage, armor_bonus=armor_bonus)


@dataclass(frozen=True, slots=True)
class CounterOutcome:
    attack: int
    absorbed: int
    hp_loss: int
    free_hit: bool = False


@dataclass(slots=True)
class RoundOutcome:
    roll: DiceRoll
    damage: int
    def_broken: bool
    enemy_hp: int
    victory: bool
    counter: CounterOutcome | None = None
    log: list[CombatLogEntry] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ItemUseOutcome:
    item: InventoryItem
    damage: int
    enemy_hp: int
    victory: bool


@dataclass(frozen=True, slots=True)
class FleeOutcome:
    chance: int
    draw: int
    escaped: bool
    counter: CounterOutcome | None = None


class CombatSession:
    """State machine for one fight.

    ``attack`` and ``flee`` are mutually exclusive: while either is in flight
    the other raises :class:`SessionBusy`. ``use_item`` is only gated on the
    session being active.
    """

    def __init__(
        self,
        card: Card,
        vitals: Vitals,
        *,
        dice: DiceRoller,
        rules: CombatRules | None = None,
        rng: Random | None = None,
        resolver: StatResolver | None = None,
        feedback: FeedbackSink | None = None,
        perks: CombatPerks | None = None,
        loot: LootClaim | None = None,
        catalog: CardCatalog | None = None,
        event_bus: EventBus | None = None,
        player_id: str | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.card = card
        self._vitals = vitals
        self._dice = dice
        self._rules = rules or CombatRules()
        self._rng = rng or Random()
        self._resolver = resolver or StatResolver()
        self._feedback = feedback or NullFeedback()
        self.perks = perks or CombatPerks()
        self._loot = loot
        self._catalog = catalog
        self._event_bus = event_bus
        self._player_id = player_id
        self._sleep = sleep

        stats = card.stats
        self.enemy_max_hp = self._resolver.resolve_int(stats, StatKey.HP, self._rules.default_enemy_hp)
        self.enemy_hp = self.enemy_max_hp
        self.enemy_atk = self._resolver.resolve_int(stats, StatKey.ATK, self._rules.default_enemy_atk)
        self.enemy_def = self._resolver.resolve_int(stats, StatKey.DEF, self._rules.default_enemy_def)

        self.status = CombatStatus.ACTIVE
        self.log: list[CombatLogEntry] = [CombatLogEntry(LogTag.INFO, "Enemy detected. Prepare for battle.")]
        self.flee_attempted = False
        self.is_rolling = False
        self.is_fleeing = False
        self._started = False

    @property
    def is_loot_claimed(self) -> bool:
        return self._loot is not None and self._loot.is_claimed

    @property
    def flee_chance(self) -> int:
        return self._rules.flee_chance(self.card.rarity.value)

    async def start(self) -> None:
        """Apply the perk armor bonus once."""
        if self._started:
            return
        self._started = True
        if self.perks.armor_bonus > 0:
            await self._vitals.on_armor_change(self.perks.armor_bonus)
            self._append(LogTag.INFO, f"Armor bonus +{self.perks.armor_bonus} from combat perks")

    async def attack(self, manual_total: object | None = None) -> RoundOutcome:
        self._ensure_active()
        if self.is_rolling or self.is_fleeing:
            raise SessionBusy("A roll or flee attempt is already in progress")
        self.is_rolling = True
        try:
            roll = await self._dice.obtain(manual_total)
            return await self._resolve_round(roll)
        finally:
            self.is_rolling = False

    async def _resolve_round(self, roll: DiceRoll) -> RoundOutcome:
        start = len(self.log)
        total = roll.total

        def_broken = False
        chance = self.card.combat_config.def_break_chance if self.card.combat_config else 0
        if chance > 0 and self._rng.random() * 100 < chance:
            def_broken = True
        effective_def = 0 if def_broken else self.enemy_def

        damage = max(0, total - effective_def) + self.perks.flat_damage
        is_crit = total == self._rules.critical_total
        if is_crit:
            damage *= 2
        if total == self._rules.miss_total:
            damage = 0

        if damage > 0:
            self.enemy_hp = max(0, self.enemy_hp - damage)
            if def_broken:
                self._append(LogTag.DEF_BREAK, f"Defense pierced! ({self.enemy_def} DEF ignored)")
                self._feedback.play("crit")
            if is_crit:
                self._feedback.play("crit")
                self._feedback.vibrate([50, 50, 50, 100])
                self._append(LogTag.CRIT, f"Critical hit! ({total}) -> {damage} DMG")
            else:
                self._feedback.play("damage")
                self._feedback.vibrate(20)
                shown_def = "0 (BROKEN)" if def_broken else str(self.enemy_def)
                self._append(LogTag.HIT, f"Attack: roll {total} vs {shown_def} DEF -> {damage} DMG")
        else:
            self._feedback.play("miss")
            self._feedback.vibrate(50)
            self._append(LogTag.MISS, f"Miss: roll {total} did not get through the defense.")

        counter = None
        if self.enemy_hp > 0:
            if self._rules.counter_delay > 0:
                await self._sleep(self._rules.counter_delay)
            # An item may have ended the fight during the pause.
            if self._fight_continues():
                counter = await self._counter_attack()
        else:
            await self._win()

        return RoundOutcome(
            roll=roll,
            damage=damage,
            def_broken=def_broken,
            enemy_hp=self.enemy_hp,
            victory=self.status is CombatStatus.VICTORY,
            counter=counter,
            log=self.log[start:],
        )

    async def _counter_attack(self, *, free_hit: bool = False) -> CounterOutcome:
        attack = max(0, self.enemy_atk)
        if attack == 0:
            return CounterOutcome(attack=0, absorbed=0, hp_loss=0, free_hit=free_hit)
        who = "Enemy (free hit)" if free_hit else "Enemy"
        armor = max(0, await self._vitals.current_armor())
        absorbed = min(armor, attack)
        if absorbed > 0:
            await self._vitals.on_armor_change(-absorbed)
            self._append(LogTag.ABSORB, f"Shield hit: -{absorbed} armor")
            self._feedback.play("error")
        remainder = attack - absorbed
        if remainder > 0:
            await self._vitals.on_player_damage(-remainder)
            self._append(LogTag.COUNTER, f"{who}: hit for {remainder} HP!")
            self._feedback.vibrate([100])
        else:
            self._append(LogTag.COUNTER, f"{who}: attack fully absorbed by the shield!")
        return CounterOutcome(attack=attack, absorbed=absorbed, hp_loss=remainder, free_hit=free_hit)

    async def use_item(self, item: InventoryItem) -> ItemUseOutcome:
        self._ensure_active()
        damage = 0
        for stat in item.card.stats:
            if self._resolver.classify(str(stat.label), [StatKey.DAMAGE]) is None:
                continue
            value = parse_stat_value(stat.value)
            if value is not None and value > 0:
                damage = value
                break

        if damage > 0:
            self.enemy_hp = max(0, self.enemy_hp - damage)
            self._append(LogTag.ITEM, f"Item used: {item.title} -> {damage} DMG!")
            self._feedback.play("damage")
            self._feedback.vibrate(50)
        else:
            self._append(LogTag.ITEM, f"Item used: {item.title}")

        on_item_used = getattr(self._vitals, "on_item_used", None)
        if on_item_used is not None:
            await on_item_used(item)

        if self.enemy_hp == 0:
            await self._win()
        return ItemUseOutcome(
            item=item,
            damage=damage,
            enemy_hp=self.enemy_hp,
            victory=self.status is CombatStatus.VICTORY,
        )

    async def flee(self) -> FleeOutcome:
        if self.flee_attempted:
            raise ActionNotPermitted("Flee was already attempted in this fight")
        self._ensure_active()
        if self.is_rolling or self.is_fleeing:
            raise SessionBusy("A roll or flee attempt is already in progress")

        self.flee_attempted = True
        self.is_fleeing = True
        try:
            chance = self.flee_chance
            draw = self._rng.randint(1, 100)
            self._append(LogTag.FLEE, f"Attempting to flee (chance {chance}%)...")
            self._feedback.play("scan")
            if self._rules.flee_delay > 0:
                await self._sleep(self._rules.flee_delay)
            if not self._fight_continues():
                return FleeOutcome(chance=chance, draw=draw, escaped=False)

            if draw <= chance:
                self._feedback.play("open")
                self._append(LogTag.FLEE, f"Success! (roll {draw}) You escaped the fight.")
                self.status = CombatStatus.FLED
                logger.info("Player %s fled from %s", self._player_id, self.card.card_id)
                await self._publish(COMBAT_FLED, {"draw": draw, "chance": chance})
                return FleeOutcome(chance=chance, draw=draw, escaped=True)

            self._feedback.play("error")
            self._feedback.vibrate(100)
            self._append(LogTag.FLEE, f"Failure! (roll {draw}) The enemy blocks the retreat.")
            counter = await self._counter_attack(free_hit=True)
            return FleeOutcome(chance=chance, draw=draw, escaped=False, counter=counter)
        finally:
            self.is_fleeing = False

    def loot_stats(self) -> tuple[Stat, ...]:
        loot = self.card.enemy_loot
        if loot is None:
            return ()
        if loot.loot_stats:
            return loot.loot_stats
        if loot.gold_reward:
            return (Stat(label="ZLATO", value=f"+{loot.gold_reward}"),)
        return ()

    async def claim_victory(self) -> LootOutcome | None:
        """Grant the enemy loot; later calls return ``None``."""
        if self.status is not CombatStatus.VICTORY:
            raise ActionNotPermitted("Loot can only be claimed after a victory")
        if self._loot is None:
            raise ActionNotPermitted("This session has no loot claim attached")
        cards: tuple[Card, ...] = ()
        if self._catalog is not None and self._rolls_item_drop():
            drop = self._catalog.find_card(self.card.enemy_loot.drop_item_id)
            if drop is None:
                logger.warning("Drop item %s missing from catalog", self.card.enemy_loot.drop_item_id)
            else:
                cards = (drop,)
        return await self._loot.claim(self.loot_stats(), cards=cards)

    def _rolls_item_drop(self) -> bool:
        loot = self.card.enemy_loot
        if loot is None or not loot.drop_item_id or loot.drop_item_chance <= 0:
            return False
        return self._rng.random() * 100 < loot.drop_item_chance

    def close(self) -> None:
        self.status = CombatStatus.CLOSED

    async def _win(self) -> None:
        if self.status is CombatStatus.VICTORY:
            return
        self.status = CombatStatus.VICTORY
        self._append(LogTag.VICTORY, "Target eliminated.")
        self._feedback.play("success")
        logger.info("Player %s defeated %s", self._player_id, self.card.card_id)
        await self._publish(COMBAT_VICTORY, {"enemy_max_hp": self.enemy_max_hp})

    async def _publish(self, topic: str, extra: Mapping[str, object]) -> None:
        if self._event_bus is None:
            return
        payload = {"player_id": self._player_id, "card_id": self.card.card_id, **extra}
        await self._event_bus.publish(topic, payload)

    def _fight_continues(self) -> bool:
        return self.enemy_hp > 0 and self.status is CombatStatus.ACTIVE

    def _ensure_active(self) -> None:
        if self.status is not CombatStatus.ACTIVE:
            raise ActionNotPermitted(f"Combat is {self.status.value}")

    def _append(self, tag: LogTag, message: str) -> None:
        self.log.append(CombatLogEntry(tag, message))
