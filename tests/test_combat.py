import asyncio

import pytest

from nexuscards.config import CombatRules
from nexuscards.domain.cards import Card, CardType, EnemyLoot, Rarity, Stat
from nexuscards.domain.combat import CombatPerks, CombatStatus, LogTag
from nexuscards.domain.events import COMBAT_VICTORY
from nexuscards.domain.exceptions import ActionNotPermitted, InvalidRoll, SessionBusy
from nexuscards.storage.base import PlayerStat
from nexuscards.testing import CardFactory, app_fixture

PLAYER = "pilot@nexus.test"


@pytest.fixture()
def app():
    return app_fixture()


@pytest.fixture()
def cards():
    return CardFactory()


async def _vitals(app):
    profile = await app.player_service.fetch(PLAYER)
    return profile.hp, profile.armor


@pytest.mark.asyncio()
async def test_round_damage_and_counter_attack(app, cards):
    enemy = cards.enemy(hp=50, atk=10, defense=5)
    session = await app.start_combat(PLAYER, enemy)

    outcome = await session.attack(9)

    assert outcome.damage == 4
    assert session.enemy_hp == 46
    assert outcome.counter.hp_loss == 10
    assert await _vitals(app) == (90, 0)
    assert [entry.tag for entry in outcome.log] == [LogTag.HIT, LogTag.COUNTER]


@pytest.mark.asyncio()
async def test_snake_eyes_always_misses(app, cards):
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, defense=0))
    outcome = await session.attack(2)
    assert outcome.damage == 0
    assert session.enemy_hp == 50
    assert outcome.log[0].tag is LogTag.MISS


@pytest.mark.asyncio()
async def test_twelve_doubles_damage_after_defense(app, cards):
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, defense=5))
    outcome = await session.attack(12)
    assert outcome.damage == 2 * (12 - 5)
    assert session.enemy_hp == 36
    assert outcome.log[0].tag is LogTag.CRIT


@pytest.mark.asyncio()
async def test_guaranteed_defense_break_ignores_def(app, cards):
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, defense=6, def_break_chance=100))
    outcome = await session.attack(8)
    assert outcome.def_broken is True
    assert outcome.damage == 8
    assert outcome.log[0].tag is LogTag.DEF_BREAK


@pytest.mark.asyncio()
async def test_armor_absorbs_before_hp(app, cards):
    await app.player_service.set_stat(PLAYER, PlayerStat.ARMOR, 4)
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, atk=10, defense=0))
    outcome = await session.attack(3)
    assert (outcome.counter.absorbed, outcome.counter.hp_loss) == (4, 6)
    assert await _vitals(app) == (94, 0)


@pytest.mark.asyncio()
async def test_fully_absorbed_counter_leaves_hp(app, cards):
    await app.player_service.set_stat(PLAYER, PlayerStat.ARMOR, 15)
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, atk=10, defense=0))
    outcome = await session.attack(3)
    assert outcome.counter.hp_loss == 0
    assert await _vitals(app) == (100, 5)


@pytest.mark.asyncio()
async def test_victory_skips_counter_and_claims_once(app, cards):
    enemy = cards.enemy(hp=5, atk=10, defense=0, loot=EnemyLoot(gold_reward=30))
    seen = []

    async def listener(payload):
        seen.append(payload)

    app.event_bus.subscribe(COMBAT_VICTORY, listener)
    session = await app.start_combat(PLAYER, enemy)

    outcome = await session.attack(7)
    assert outcome.victory is True
    assert outcome.counter is None
    assert session.status is CombatStatus.VICTORY
    assert seen and seen[0]["card_id"] == enemy.card_id

    loot = await session.claim_victory()
    assert loot.adjustments == [(PlayerStat.GOLD, 30)]
    assert await session.claim_victory() is None
    assert session.is_loot_claimed
    profile = await app.player_service.fetch(PLAYER)
    assert profile.stats["gold"] == 130
    assert profile.hp == 100

    with pytest.raises(ActionNotPermitted):
        await session.attack(7)


@pytest.mark.asyncio()
async def test_claim_before_victory_is_refused(app, cards):
    session = await app.start_combat(PLAYER, cards.enemy(hp=50))
    with pytest.raises(ActionNotPermitted):
        await session.claim_victory()


@pytest.mark.asyncio()
async def test_guaranteed_drop_item_is_granted(app, cards):
    relic = cards.item(Stat("DMG", "+3"), title="Relic")
    app.cards.card(relic)
    enemy = cards.enemy(
        hp=1,
        defense=0,
        loot=EnemyLoot(loot_stats=(Stat("MINCE", "+5"),), drop_item_chance=100, drop_item_id=relic.card_id),
    )
    session = await app.start_combat(PLAYER, enemy)
    await session.attack(5)
    loot = await session.claim_victory()
    assert [item.card_id for item in loot.granted_items] == [relic.card_id]


@pytest.mark.asyncio()
async def test_flee_only_once():
    app = app_fixture(combat=CombatRules(flee_chances={}, default_flee_chance=0))
    session = await app.start_combat(PLAYER, CardFactory().enemy(hp=50, atk=10))

    outcome = await session.flee()
    assert outcome.escaped is False
    assert outcome.counter.free_hit is True
    assert session.flee_attempted is True
    assert session.status is CombatStatus.ACTIVE

    with pytest.raises(ActionNotPermitted):
        await session.flee()


@pytest.mark.asyncio()
async def test_successful_flee_ends_combat():
    app = app_fixture(combat=CombatRules(flee_chances={"Legendary": 100}))
    enemy = CardFactory().enemy(hp=50, rarity=Rarity.LEGENDARY)
    session = await app.start_combat(PLAYER, enemy)
    outcome = await session.flee()
    assert outcome.escaped is True
    assert session.status is CombatStatus.FLED
    with pytest.raises(ActionNotPermitted):
        await session.attack(7)


def test_live_flee_table_is_default():
    rules = CombatRules()
    assert rules.flee_chance("legendary") == 10
    assert rules.flee_chance("Epic") == 40
    assert rules.flee_chance("Rare") == 60
    assert rules.flee_chance(None) == 80
    assert rules.flee_chance("Mythic") == 80


@pytest.mark.asyncio()
async def test_roll_and_flee_are_mutually_exclusive(app, cards):
    session = await app.start_combat(PLAYER, cards.enemy(hp=50))
    session.is_rolling = True
    with pytest.raises(SessionBusy):
        await session.flee()
    assert session.flee_attempted is False
    with pytest.raises(SessionBusy):
        await session.attack(7)


@pytest.mark.asyncio()
async def test_invalid_manual_roll_changes_nothing(app, cards):
    session = await app.start_combat(PLAYER, cards.enemy(hp=50))
    for bad in (13, "²"):
        with pytest.raises(InvalidRoll):
            await session.attack(bad)
    assert session.enemy_hp == 50
    assert session.is_rolling is False


@pytest.mark.asyncio()
async def test_item_damage_hits_enemy_without_counter(app, cards):
    grenade = await app.player_service.add_item(
        PLAYER, cards.item(Stat("POŠKOZENÍ", "+15"), consumable=True)
    )
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, atk=10))
    outcome = await session.use_item(grenade)
    assert outcome.damage == 15
    assert session.enemy_hp == 35
    profile = await app.player_service.fetch(PLAYER)
    assert profile.hp == 100
    assert profile.inventory == []


@pytest.mark.asyncio()
async def test_combat_perks_apply(app, cards):
    session = await app.start_combat(
        PLAYER, cards.enemy(hp=50, defense=0), perks=CombatPerks(flat_damage=2, armor_bonus=5)
    )
    assert (await _vitals(app))[1] == 5
    outcome = await session.attack(12)
    assert outcome.damage == (12 + 2) * 2


def test_combat_perks_from_character_sheet():
    perks = CombatPerks.from_perks(
        [
            {"effect": {"condition": "combat", "stat": "damage", "modifier": 2}},
            {"effect": {"condition": "combat", "stat": "armor", "modifier": 3}},
            {"effect": {"condition": "trade", "stat": "damage", "modifier": 9}},
        ]
    )
    assert perks == CombatPerks(flat_damage=2, armor_bonus=3)


@pytest.mark.asyncio()
async def test_non_numeric_enemy_hp_falls_back(app):
    enemy = Card(card_id="GHOST", title="Ghost", type=CardType.ENCOUNTER, stats=(Stat("HP", "???"),))
    session = await app.start_combat(PLAYER, enemy)
    assert session.enemy_max_hp == 50


@pytest.mark.asyncio()
async def test_item_kill_during_counter_delay_cancels_counter(cards):
    app = app_fixture()
    app.config.combat.counter_delay = 0.01
    bomb = await app.player_service.add_item(PLAYER, cards.item(Stat("DMG", "99"), consumable=True))
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, atk=10))

    round_outcome, item_outcome = await asyncio.gather(session.attack(5), session.use_item(bomb))

    assert item_outcome.victory is True
    assert round_outcome.counter is None
    assert session.status is CombatStatus.VICTORY
    assert LogTag.COUNTER not in [entry.tag for entry in session.log]
    assert await _vitals(app) == (100, 0)


@pytest.mark.asyncio()
async def test_item_kill_during_flee_keeps_victory(cards):
    app = app_fixture(combat=CombatRules(flee_chances={}, default_flee_chance=100))
    app.config.combat.flee_delay = 0.01
    bomb = await app.player_service.add_item(PLAYER, cards.item(Stat("DMG", "99"), consumable=True))
    session = await app.start_combat(PLAYER, cards.enemy(hp=50, atk=10))

    flee_outcome, _ = await asyncio.gather(session.flee(), session.use_item(bomb))

    assert flee_outcome.escaped is False
    assert flee_outcome.counter is None
    assert session.status is CombatStatus.VICTORY
    assert await _vitals(app) == (100, 0)
