"""Load cards from JSON definitions and convert them back to records.

Card dictionaries use the camelCase layout of the persisted card records
(``id``, ``title``, ``type``, ``stats``, ``trapConfig`` ...). Inventory items
are stored in the same layout with the instance id in ``id`` and the catalog
id in ``cardId``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence, TYPE_CHECKING

from ..domain.cards import (
    ANY_CLASS,
    Card,
    CardType,
    CombatConfig,
    CraftingRecipe,
    DilemmaOption,
    EnemyLoot,
    MerchantItemEntry,
    MerchantTradeConfig,
    PlanetConfig,
    PlayerClass,
    Rarity,
    RequiredResource,
    ResourceConfig,
    Stat,
    StationConfig,
    TrapConfig,
)
from ..domain.inventory import InventoryItem

if TYPE_CHECKING:
    from ..app import GameApp

_KNOWN_KEYS = {
    "id",
    "cardId",
    "title",
    "description",
    "type",
    "rarity",
    "stats",
    "flavorText",
    "isConsumable",
    "price",
    "trapConfig",
    "combatConfig",
    "enemyLoot",
    "resourceConfig",
    "craftingRecipe",
    "planetConfig",
    "planetProgress",
    "stationConfig",
    "dilemmaOptions",
    "merchantItems",
    "tradeConfig",
    "canSellToMerchant",
}


@dataclass(slots=True)
class CatalogDefinition:
    cards: Sequence[Card]


def load_catalog_from_json(app: "GameApp", path: str | Path) -> CatalogDefinition:
    """Load cards from a JSON file and register them on the app."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    definition = parse_catalog_dict(data)
    for card in definition.cards:
        app.cards.card(card)
    return definition


def parse_catalog_dict(data: dict[str, Any]) -> CatalogDefinition:
    """Parse an already decoded catalog into domain objects."""
    errors = validate_catalog_dict(data)
    if errors:
        raise ValueError(_format_errors("Catalog validation failed", errors))
    return CatalogDefinition(cards=tuple(parse_card(entry) for entry in data.get("cards", [])))


def parse_stats(raw: Iterable[dict[str, Any]] | None) -> tuple[Stat, ...]:
    return tuple(Stat(label=str(entry["label"]), value=entry.get("value", "")) for entry in raw or ())


def parse_card(entry: dict[str, Any]) -> Card:
    trap = entry.get("trapConfig")
    combat = entry.get("combatConfig")
    loot = entry.get("enemyLoot")
    resource = entry.get("resourceConfig")
    recipe = entry.get("craftingRecipe")
    planet = entry.get("planetConfig")
    station = entry.get("stationConfig")

    return Card(
        card_id=str(entry.get("cardId") or entry["id"]),
        title=entry.get("title", entry.get("cardId") or entry["id"]),
        type=CardType.parse(entry.get("type", CardType.ITEM.value)),
        description=entry.get("description", ""),
        rarity=Rarity.parse(entry.get("rarity")),
        stats=parse_stats(entry.get("stats")),
        flavor_text=entry.get("flavorText"),
        is_consumable=bool(entry.get("isConsumable", False)),
        price=entry.get("price"),
        trap_config=_parse_trap(trap) if trap else None,
        combat_config=(
            CombatConfig(def_break_chance=float(combat.get("defBreakChance") or 0))
            if combat
            else None
        ),
        enemy_loot=(
            EnemyLoot(
                loot_stats=parse_stats(loot.get("lootStats")),
                gold_reward=int(loot.get("goldReward") or 0),
                drop_item_chance=float(loot.get("dropItemChance") or 0),
                drop_item_id=loot.get("dropItemId"),
            )
            if loot
            else None
        ),
        resource_config=(
            ResourceConfig(
                is_resource_container=bool(resource.get("isResourceContainer")),
                resource_name=str(resource.get("resourceName", "")),
                resource_amount=(
                    int(resource["resourceAmount"])
                    if resource.get("resourceAmount") is not None
                    else 1
                ),
                custom_label=resource.get("customLabel"),
            )
            if resource
            else None
        ),
        crafting_recipe=(
            CraftingRecipe(
                enabled=bool(recipe.get("enabled", False)),
                required_resources=tuple(
                    RequiredResource(resource_name=str(req["resourceName"]), amount=int(req["amount"]))
                    for req in recipe.get("requiredResources", ())
                ),
                crafting_time_seconds=recipe.get("craftingTimeSeconds"),
            )
            if recipe
            else None
        ),
        planet_config=(
            PlanetConfig(
                planet_id=str(planet["planetId"]),
                landing_event_type=CardType.parse(
                    planet.get("landingEventType", CardType.ENCOUNTER.value)
                ),
                landing_event_id=planet.get("landingEventId"),
                phases=tuple(str(phase) for phase in planet.get("phases") or ()),
            )
            if planet
            else None
        ),
        station_config=(
            StationConfig(
                fuel_reward=int(station.get("fuelReward") or 0),
                repair_amount=int(station.get("repairAmount") or 0),
                refill_o2=bool(station.get("refillO2", False)),
                welcome_message=station.get("welcomeMessage", ""),
            )
            if station
            else None
        ),
        dilemma_options=tuple(
            _parse_dilemma_option(option) for option in entry.get("dilemmaOptions") or ()
        ),
        merchant_items=tuple(
            _parse_merchant_entry(item) for item in entry.get("merchantItems") or ()
        ),
        trade_config=_parse_trade_config(entry["tradeConfig"]) if entry.get("tradeConfig") else None,
        can_sell_to_merchant=bool(entry.get("canSellToMerchant", False)),
        extra={key: value for key, value in entry.items() if key not in _KNOWN_KEYS},
    )


def _parse_trap(trap: dict[str, Any]) -> TrapConfig:
    defaults = TrapConfig()
    disarm_raw = trap.get("disarmClass") or ANY_CLASS
    disarm_class: PlayerClass | str
    disarm_class = ANY_CLASS if disarm_raw == ANY_CLASS else PlayerClass.parse(disarm_raw)
    return TrapConfig(
        difficulty=int(trap.get("difficulty", defaults.difficulty)),
        damage=int(trap.get("damage", defaults.damage)),
        disarm_class=disarm_class,
        success_message=trap.get("successMessage") or defaults.success_message,
        fail_message=trap.get("failMessage") or defaults.fail_message,
        trap_type=trap.get("trapType") or defaults.trap_type,
        loot=parse_stats(trap.get("loot")),
    )


def _parse_dilemma_option(option: dict[str, Any]) -> DilemmaOption:
    chance = option.get("successChance")
    return DilemmaOption(
        label=str(option.get("label", "")),
        success_chance=float(chance) if chance is not None else 100.0,
        consequence_text=option.get("consequenceText") or "",
        rewards=tuple(
            Stat(label=str(reward["type"]), value=int(reward.get("value") or 0))
            for reward in option.get("rewards") or ()
        ),
        effect_type=option.get("effectType"),
        effect_value=int(option.get("effectValue") or 0),
        fail_message=option.get("failMessage") or "",
        fail_damage=int(option.get("failDamage") or 0),
        physical_instruction=option.get("physicalInstruction"),
    )


def _parse_merchant_entry(item: dict[str, Any]) -> MerchantItemEntry:
    return MerchantItemEntry(
        card_id=str(item["id"]).strip(),
        stock=int(item.get("stock") or 0),
        price=item.get("price"),
        sell_price=item.get("sellPrice"),
        sale_chance=float(item.get("saleChance") or 0),
    )


def _parse_trade_config(config: dict[str, Any]) -> MerchantTradeConfig:
    defaults = MerchantTradeConfig()
    return MerchantTradeConfig(
        warrior_discount=int(config.get("warriorDiscount", defaults.warrior_discount)),
        cleric_discount=int(config.get("clericDiscount", defaults.cleric_discount)),
        mage_discount=int(config.get("mageDiscount", defaults.mage_discount)),
        rogue_steal_chance=float(config.get("rogueStealChance", defaults.rogue_steal_chance)),
    )


def dump_stats(stats: Iterable[Stat]) -> list[dict[str, Any]]:
    return [{"label": stat.label, "value": stat.value} for stat in stats]


def dump_card(card: Card) -> dict[str, Any]:
    data: dict[str, Any] = dict(card.extra)
    data.update(
        {
            "id": card.card_id,
            "title": card.title,
            "description": card.description,
            "type": card.type.value,
            "rarity": card.rarity.value,
            "stats": dump_stats(card.stats),
        }
    )
    if card.flavor_text:
        data["flavorText"] = card.flavor_text
    if card.is_consumable:
        data["isConsumable"] = True
    if card.price is not None:
        data["price"] = card.price
    if card.trap_config:
        trap = card.trap_config
        data["trapConfig"] = {
            "difficulty": trap.difficulty,
            "damage": trap.damage,
            "disarmClass": getattr(trap.disarm_class, "value", trap.disarm_class),
            "successMessage": trap.success_message,
            "failMessage": trap.fail_message,
            "trapType": trap.trap_type,
            "loot": dump_stats(trap.loot),
        }
    if card.combat_config:
        data["combatConfig"] = {"defBreakChance": card.combat_config.def_break_chance}
    if card.enemy_loot:
        loot = card.enemy_loot
        data["enemyLoot"] = {
            "lootStats": dump_stats(loot.loot_stats),
            "goldReward": loot.gold_reward,
            "dropItemChance": loot.drop_item_chance,
            "dropItemId": loot.drop_item_id,
        }
    if card.resource_config:
        resource = card.resource_config
        data["resourceConfig"] = {
            "isResourceContainer": resource.is_resource_container,
            "resourceName": resource.resource_name,
            "resourceAmount": resource.resource_amount,
            "customLabel": resource.custom_label,
        }
    if card.crafting_recipe:
        recipe = card.crafting_recipe
        data["craftingRecipe"] = {
            "enabled": recipe.enabled,
            "requiredResources": [
                {"resourceName": req.resource_name, "amount": req.amount}
                for req in recipe.required_resources
            ],
            "craftingTimeSeconds": recipe.crafting_time_seconds,
        }
    if card.planet_config:
        planet = card.planet_config
        data["planetConfig"] = {
            "planetId": planet.planet_id,
            "landingEventType": planet.landing_event_type.value,
            "landingEventId": planet.landing_event_id,
            "phases": list(planet.phases),
        }
    if card.station_config:
        station = card.station_config
        data["stationConfig"] = {
            "fuelReward": station.fuel_reward,
            "repairAmount": station.repair_amount,
            "refillO2": station.refill_o2,
            "welcomeMessage": station.welcome_message,
        }
    if card.dilemma_options:
        data["dilemmaOptions"] = [
            {
                "label": option.label,
                "successChance": option.success_chance,
                "consequenceText": option.consequence_text,
                "rewards": [{"type": reward.label, "value": reward.value} for reward in option.rewards],
                "effectType": option.effect_type,
                "effectValue": option.effect_value,
                "failMessage": option.fail_message,
                "failDamage": option.fail_damage,
                "physicalInstruction": option.physical_instruction,
            }
            for option in card.dilemma_options
        ]
    if card.merchant_items:
        data["merchantItems"] = [
            {
                "id": item.card_id,
                "stock": item.stock,
                "price": item.price,
                "sellPrice": item.sell_price,
                "saleChance": item.sale_chance,
            }
            for item in card.merchant_items
        ]
    if card.trade_config:
        config = card.trade_config
        data["tradeConfig"] = {
            "warriorDiscount": config.warrior_discount,
            "clericDiscount": config.cleric_discount,
            "mageDiscount": config.mage_discount,
            "rogueStealChance": config.rogue_steal_chance,
        }
    if card.can_sell_to_merchant:
        data["canSellToMerchant"] = True
    return data


def dump_item(item: InventoryItem) -> dict[str, Any]:
    data = dump_card(item.card)
    data["cardId"] = item.card_id
    data["id"] = item.instance_id
    if item.resource_amount is not None and "resourceConfig" in data:
        data["resourceConfig"]["resourceAmount"] = item.resource_amount
    if item.planet_progress:
        data["planetProgress"] = item.planet_progress
    return data


def parse_item(entry: dict[str, Any]) -> InventoryItem:
    instance_id = str(entry["id"])
    card_entry = dict(entry)
    card_entry.setdefault("cardId", instance_id.split("__")[0])
    card = parse_card(card_entry)
    amount = card.resource_config.resource_amount if card.is_resource_container else None
    return InventoryItem(
        instance_id=instance_id,
        card=card,
        resource_amount=amount,
        planet_progress=int(entry.get("planetProgress") or 0),
    )


def validate_catalog_file(path: str | Path) -> list[str]:
    """Validate catalog JSON file and return a list of errors."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return validate_catalog_dict(data)


def validate_catalog_dict(data: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    cards_raw = data.get("cards") if isinstance(data, dict) else None
    if not isinstance(cards_raw, list) or not cards_raw:
        return ["Catalog must contain non-empty 'cards' array."]

    card_ids: set[str] = set()
    for idx, entry in enumerate(cards_raw, start=1):
        if not isinstance(entry, dict):
            errors.append(f"Card #{idx} must be an object.")
            continue
        card_id = entry.get("id")
        if not isinstance(card_id, str) or not card_id.strip():
            errors.append(f"Card #{idx} must define non-empty 'id'.")
            continue
        if card_id in card_ids:
            errors.append(f"Card id '{card_id}' defined multiple times.")
        card_ids.add(card_id)

        title = entry.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(f"Card '{card_id}' must define non-empty 'title'.")

        try:
            CardType.parse(entry.get("type", ""))
        except (KeyError, ValueError):
            errors.append(f"Card '{card_id}' has invalid type '{entry.get('type')}'.")

        try:
            Rarity.parse(entry.get("rarity"))
        except ValueError:
            errors.append(f"Card '{card_id}' has invalid rarity '{entry.get('rarity')}'.")

        errors.extend(_validate_stats(card_id, "stats", entry.get("stats")))

        trap = entry.get("trapConfig")
        if trap is not None:
            if not isinstance(trap, dict):
                errors.append(f"Card '{card_id}' trapConfig must be an object.")
            else:
                for key in ("difficulty", "damage"):
                    if key in trap and (not isinstance(trap[key], int) or trap[key] < 0):
                        errors.append(f"Card '{card_id}' trapConfig.{key} must be a non-negative integer.")
                disarm = trap.get("disarmClass")
                if disarm not in (None, "", ANY_CLASS):
                    try:
                        PlayerClass.parse(disarm)
                    except (KeyError, ValueError):
                        errors.append(f"Card '{card_id}' trapConfig has unknown disarmClass '{disarm}'.")
                errors.extend(_validate_stats(card_id, "trapConfig.loot", trap.get("loot")))

        combat = entry.get("combatConfig")
        if isinstance(combat, dict) and "defBreakChance" in combat:
            chance = combat["defBreakChance"]
            if not isinstance(chance, (int, float)) or not 0 <= chance <= 100:
                errors.append(f"Card '{card_id}' defBreakChance must be between 0 and 100.")

        recipe = entry.get("craftingRecipe")
        if isinstance(recipe, dict):
            for req in recipe.get("requiredResources") or ():
                if not isinstance(req, dict) or not req.get("resourceName"):
                    errors.append(f"Card '{card_id}' recipe entries must name a resource.")
                elif not isinstance(req.get("amount"), int) or req["amount"] <= 0:
                    errors.append(
                        f"Card '{card_id}' recipe amount for '{req['resourceName']}' must be positive."
                    )

        for option in entry.get("dilemmaOptions") or ():
            chance = option.get("successChance", 100) if isinstance(option, dict) else None
            if not isinstance(chance, (int, float)) or not 0 <= chance <= 100:
                errors.append(f"Card '{card_id}' dilemma option successChance must be between 0 and 100.")

        for item in entry.get("merchantItems") or ():
            if not isinstance(item, dict) or not item.get("id"):
                errors.append(f"Card '{card_id}' merchant entries must reference a card id.")
            elif not isinstance(item.get("stock", 0), int) or item.get("stock", 0) < 0:
                errors.append(f"Card '{card_id}' merchant stock for '{item['id']}' must be non-negative.")

        planet = entry.get("planetConfig")
        if planet is not None:
            if not isinstance(planet, dict) or not planet.get("planetId"):
                errors.append(f"Card '{card_id}' planetConfig must define 'planetId'.")
            elif not isinstance(planet.get("phases", []), list):
                errors.append(f"Card '{card_id}' planetConfig.phases must be an array.")

    return errors


def _validate_stats(card_id: str, field_name: str, raw: Any) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        return [f"Card '{card_id}' {field_name} must be an array."]
    errors: list[str] = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("label"), str):
            errors.append(f"Card '{card_id}' {field_name} entries need a string 'label'.")
    return errors


def _format_errors(prefix: str, errors: Iterable[str]) -> str:
    formatted = "\n".join(f"- {err}" for err in errors)
    return f"{prefix}:\n{formatted}"
