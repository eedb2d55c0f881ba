import pytest

from nexuscards.domain.cards import PlayerClass, Stat
from nexuscards.domain.player import PlayerVitals, clamp_stat
from nexuscards.config import PlayerLimits
from nexuscards.storage.base import PlayerStat
from nexuscards.testing import CardFactory, app_fixture


@pytest.mark.asyncio()
async def test_new_player_starts_with_default_vitals():
    app = app_fixture()
    profile = await app.player_service.register("tg:1", "Nova", PlayerClass.MAGE)
    assert profile.nickname == "Nova"
    assert profile.player_class is PlayerClass.MAGE
    assert profile.stats == {"hp": 100, "armor": 0, "gold": 100, "fuel": 100, "oxygen": 100}
    assert profile.inventory == []


@pytest.mark.asyncio()
async def test_adjust_stat_clamps_to_limits():
    app = app_fixture()
    assert await app.player_service.adjust_stat("tg:1", PlayerStat.HP, 25) == 100
    assert await app.player_service.adjust_stat("tg:1", PlayerStat.HP, -130) == 0
    assert await app.player_service.adjust_stat("tg:1", PlayerStat.GOLD, 900) == 1000
    assert await app.player_service.adjust_stat("tg:1", PlayerStat.ARMOR, -5) == 0


def test_clamp_stat_caps_only_bounded_vitals():
    limits = PlayerLimits(max_hp=80)
    assert clamp_stat(limits, PlayerStat.HP, 95) == 80
    assert clamp_stat(limits, PlayerStat.ARMOR, 95) == 95
    assert clamp_stat(limits, PlayerStat.OXYGEN, -1) == 0


@pytest.mark.asyncio()
async def test_items_keep_instance_identity():
    app = app_fixture()
    cards = CardFactory()
    card = cards.item(Stat("DMG", "+5"))
    first = await app.player_service.add_item("tg:1", card)
    second = await app.player_service.add_item("tg:1", card)
    assert first.instance_id != second.instance_id
    assert first.instance_id.startswith(f"{card.card_id}__")

    removed = await app.player_service.remove_item("tg:1", first.instance_id)
    assert removed.instance_id == first.instance_id
    assert await app.player_service.remove_item("tg:1", first.instance_id) is None
    inventory = (await app.player_service.fetch("tg:1")).inventory
    assert [item.instance_id for item in inventory] == [second.instance_id]


@pytest.mark.asyncio()
async def test_grant_card_uses_catalog():
    app = app_fixture()
    card = CardFactory().resource("Scrap", 3)
    app.cards.card(card)
    item = await app.player_service.grant_card("tg:1", card.card_id)
    assert item.resource_amount == 3
    assert await app.player_service.resource_totals("tg:1") == {"Scrap": 3}


@pytest.mark.asyncio()
async def test_profile_is_a_detached_copy():
    app = app_fixture()
    profile = await app.player_service.fetch("tg:1")
    profile.stats["hp"] = 1
    assert (await app.player_service.fetch("tg:1")).hp == 100


@pytest.mark.asyncio()
async def test_vitals_remove_consumables_only():
    app = app_fixture()
    cards = CardFactory()
    medkit = await app.player_service.add_item("tg:1", cards.item(consumable=True))
    blaster = await app.player_service.add_item("tg:1", cards.item())
    vitals = PlayerVitals(app.player_service, "tg:1")

    await vitals.on_item_used(medkit)
    await vitals.on_item_used(blaster)
    await vitals.on_item_used(medkit)

    inventory = (await app.player_service.fetch("tg:1")).inventory
    assert [item.instance_id for item in inventory] == [blaster.instance_id]
    await vitals.on_player_damage(-30)
    assert await vitals.current_hp() == 70
