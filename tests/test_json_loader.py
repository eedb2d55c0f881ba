import json
from pathlib import Path

import pytest

from nexuscards.app import GameApp
from nexuscards.config import NexusConfig
from nexuscards.domain.cards import CardType, PlayerClass, Rarity
from nexuscards.domain.inventory import InventoryItem
from nexuscards.loaders import (
    dump_card,
    load_catalog_from_json,
    parse_card,
    parse_catalog_dict,
    validate_catalog_dict,
)
from nexuscards.loaders.json_loader import dump_item, parse_item


def _catalog():
    return {
        "cards": [
            {
                "id": "ENC-RAIDER",
                "title": "Raider",
                "type": "SETKÁNÍ",
                "rarity": "epic",
                "stats": [{"label": "HP", "value": "40"}, {"label": "ATK", "value": 8}],
                "combatConfig": {"defBreakChance": 25},
                "enemyLoot": {"goldReward": 30, "dropItemId": "ITEM-SCRAP", "dropItemChance": 50},
            },
            {
                "id": "TRAP-LASER",
                "title": "Laser grid",
                "type": "TRAP",
                "trapConfig": {"difficulty": 9, "damage": 12, "disarmClass": "ROGUE"},
                "artist": "unknown",
            },
            {
                "id": "ITEM-SCRAP",
                "title": "Scrap",
                "type": "PŘEDMĚT",
                "resourceConfig": {
                    "isResourceContainer": True,
                    "resourceName": "Scrap",
                    "resourceAmount": 3,
                },
            },
            {
                "id": "PLANET-KEPLER",
                "title": "Kepler",
                "type": "PLANETA",
                "planetConfig": {"planetId": "kepler", "phases": ["ENC-RAIDER", "TRAP-LASER"]},
            },
        ]
    }


def test_parse_catalog_dict_builds_cards():
    raider, trap, scrap, planet = parse_catalog_dict(_catalog()).cards

    assert raider.type is CardType.ENCOUNTER
    assert raider.rarity is Rarity.EPIC
    assert raider.combat_config.def_break_chance == 25.0
    assert raider.enemy_loot.gold_reward == 30
    assert trap.type is CardType.TRAP
    assert trap.trap_config.disarm_class is PlayerClass.ROGUE
    assert trap.trap_config.success_message == "Trap disarmed."
    assert trap.extra == {"artist": "unknown"}
    assert scrap.is_resource_container
    assert planet.planet_config.phases == ("ENC-RAIDER", "TRAP-LASER")
    assert planet.planet_config.landing_event_type is CardType.ENCOUNTER


def test_dump_card_round_trips_authored_fields():
    for card in parse_catalog_dict(_catalog()).cards:
        assert parse_card(dump_card(card)) == card


def test_item_record_keeps_instance_state():
    scrap = parse_catalog_dict(_catalog()).cards[2]
    item = InventoryItem.from_card(scrap)
    item.resource_amount = 0

    record = dump_item(item)
    assert record["id"] == item.instance_id
    assert record["cardId"] == "ITEM-SCRAP"

    restored = parse_item(record)
    assert restored.instance_id == item.instance_id
    assert restored.card_id == "ITEM-SCRAP"
    assert restored.resource_amount == 0


def test_parse_item_derives_card_id_from_instance_id():
    restored = parse_item({"id": "ITEM-X__ab12cd34", "title": "X", "type": "PŘEDMĚT"})
    assert restored.card_id == "ITEM-X"


def test_parse_catalog_dict_invalid_raises():
    with pytest.raises(ValueError):
        parse_catalog_dict({"cards": [{"id": "broken", "type": "NOPE"}]})


def test_validate_catalog_dict_reports_problems():
    data = {
        "cards": [
            {"id": "A", "title": "A", "type": "TRAP", "trapConfig": {"difficulty": -1, "disarmClass": "PIRATE"}},
            {"id": "A", "title": "", "type": "BOSS", "combatConfig": {"defBreakChance": 150}},
            {
                "id": "B",
                "title": "B",
                "type": "PŘEDMĚT",
                "craftingRecipe": {"enabled": True, "requiredResources": [{"resourceName": "Ore", "amount": 0}]},
            },
            {"id": "C", "title": "C", "type": "PLANETA", "planetConfig": {"phases": []}},
        ]
    }
    errors = validate_catalog_dict(data)
    assert any("difficulty must be a non-negative" in err for err in errors)
    assert any("unknown disarmClass" in err for err in errors)
    assert any("defined multiple times" in err for err in errors)
    assert any("non-empty 'title'" in err for err in errors)
    assert any("defBreakChance" in err for err in errors)
    assert any("must be positive" in err for err in errors)
    assert any("planetId" in err for err in errors)


def test_dilemma_and_merchant_fields_parse_and_dump():
    dilemma = parse_card(
        {
            "id": "DIL-DOOR",
            "title": "Locked door",
            "type": "DILEMA",
            "dilemmaOptions": [
                {
                    "label": "Kick",
                    "successChance": 40,
                    "consequenceText": "It gives way.",
                    "rewards": [{"type": "GOLD", "value": 20}],
                    "failDamage": 10,
                },
                {"label": "Leave", "effectType": "none"},
            ],
        }
    )
    kick, leave = dilemma.dilemma_options
    assert (kick.success_chance, kick.fail_damage) == (40, 10)
    assert [(reward.label, reward.value) for reward in kick.rewards] == [("GOLD", 20)]
    assert leave.success_chance == 100

    merchant = parse_card(
        {
            "id": "MERCH-ZED",
            "title": "Zed",
            "type": "OBCHODNÍK",
            "merchantItems": [{"id": "ITEM-SCRAP", "stock": 3, "sellPrice": 15, "saleChance": 20}],
            "tradeConfig": {"warriorDiscount": 5},
            "canSellToMerchant": True,
        }
    )
    (entry,) = merchant.merchant_items
    assert (entry.card_id, entry.stock, entry.price, entry.sell_price) == ("ITEM-SCRAP", 3, None, 15)
    assert merchant.trade_config.warrior_discount == 5
    assert merchant.trade_config.cleric_discount == 45
    assert merchant.can_sell_to_merchant is True
    assert "merchantItems" not in merchant.extra
    assert parse_card(dump_card(merchant)) == merchant
    assert parse_card(dump_card(dilemma)) == dilemma


def test_validate_catalog_dict_checks_dilemmas_and_stock():
    errors = validate_catalog_dict(
        {
            "cards": [
                {"id": "D", "title": "D", "type": "DILEMA", "dilemmaOptions": [{"successChance": 140}]},
                {"id": "M", "title": "M", "type": "OBCHODNÍK", "merchantItems": [{"id": "X", "stock": -1}]},
            ]
        }
    )
    assert any("successChance" in err for err in errors)
    assert any("must be non-negative" in err for err in errors)

def test_validate_catalog_dict_requires_cards():
    assert validate_catalog_dict({}) == ["Catalog must contain non-empty 'cards' array."]


@pytest.mark.asyncio()
async def test_load_catalog_from_json_registers_cards(tmp_path: Path):
    json_path = tmp_path / "catalog.json"
    json_path.write_text(json.dumps(_catalog()), encoding="utf-8")

    app = GameApp(NexusConfig.instant(bot_token="test"))
    load_catalog_from_json(app, json_path)

    card_ids = {card.card_id for card in app.cards.catalog.iter_cards()}
    assert card_ids == {"ENC-RAIDER", "TRAP-LASER", "ITEM-SCRAP", "PLANET-KEPLER"}
    session = await app.start_combat("tg:1", "ENC-RAIDER")
    assert (session.enemy_hp, session.enemy_atk, session.enemy_def) == (40, 8, 0)
