from random import Random

import pytest

from nexuscards.config import DiceRules
from nexuscards.domain.cards import Stat
from nexuscards.domain.dice import DiceRoller, RollSource, split_total
from nexuscards.domain.exceptions import InvalidRoll
from nexuscards.domain.stats import StatKey, StatResolver, SynonymTable, parse_stat_value, set_stat


def test_parse_stat_value_extracts_first_signed_integer():
    assert parse_stat_value("+50") == 50
    assert parse_stat_value("-10") == -10
    assert parse_stat_value("12 DMG") == 12
    assert parse_stat_value("abc") is None
    assert parse_stat_value(None) is None


def test_enemy_stats_use_exact_labels_and_defaults():
    resolver = StatResolver()
    stats = (Stat("HP bonus", "+5"), Stat("zdraví", "30"), Stat("ATK", "abc"))
    assert resolver.resolve_int(stats, StatKey.HP) == 30
    assert resolver.resolve_int(stats, StatKey.ATK) == 10
    assert resolver.resolve_int(stats, StatKey.DEF) == 0
    assert resolver.resolve_int((), StatKey.HP) == 50


def test_reward_groups_match_substrings_case_insensitively():
    resolver = StatResolver()
    assert resolver.classify("Palivo navíc", [StatKey.FUEL]) is StatKey.FUEL
    assert resolver.classify("mince", [StatKey.GOLD]) is StatKey.GOLD
    assert resolver.classify("Laser DMG", [StatKey.DAMAGE]) is StatKey.DAMAGE
    assert resolver.classify("Kompas", [StatKey.FUEL, StatKey.GOLD]) is None


def test_synonym_table_can_be_extended():
    table = SynonymTable()
    table.extend(StatKey.GOLD, ["kredity"])
    resolver = StatResolver(table)
    assert resolver.classify("KREDITY", [StatKey.GOLD]) is StatKey.GOLD
    untouched = SynonymTable().with_aliases(StatKey.FUEL, ["plasma"])
    assert "PLASMA" in untouched.group(StatKey.FUEL).aliases
    assert "PLASMA" not in SynonymTable().group(StatKey.FUEL).aliases


def test_set_stat_replaces_exact_label():
    stats = (Stat("HP", 10), Stat("ATK", 3))
    updated = set_stat(stats, "HP", 25)
    assert updated == (Stat("ATK", 3), Stat("HP", 25))


def test_manual_roll_splits_total():
    roller = DiceRoller(DiceRules(animation_frames=0, frame_interval=0))
    roll = roller.manual("7")
    assert (roll.first, roll.second) == split_total(7) == (3, 4)
    assert roll.total == 7
    assert roll.source is RollSource.MANUAL


@pytest.mark.parametrize("value", [1, 13, "abc", "", "²", "٧", "+-7", True, 7.5, None])
def test_manual_roll_rejects_invalid_totals(value):
    roller = DiceRoller(DiceRules(animation_frames=0, frame_interval=0))
    with pytest.raises(InvalidRoll):
        roller.manual(value)


@pytest.mark.asyncio()
async def test_virtual_roll_animates_then_commits_fresh_pair():
    frames: list[tuple[int, int]] = []
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    roller = DiceRoller(
        DiceRules(animation_frames=4, frame_interval=0.05), rng=Random(11), sleep=fake_sleep
    )
    roll = await roller.roll_virtual(lambda a, b: frames.append((a, b)))
    assert len(frames) == 4
    assert sleeps == [0.05] * 4
    assert 2 <= roll.total <= 12
    assert roll.source is RollSource.VIRTUAL


@pytest.mark.asyncio()
async def test_obtain_prefers_manual_total():
    roller = DiceRoller(DiceRules(animation_frames=0, frame_interval=0), rng=Random(1))
    roll = await roller.obtain(12)
    assert roll.total == 12
    assert roll.source is RollSource.MANUAL
