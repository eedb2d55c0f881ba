"""Validation utilities for nexuscards applications."""

from __future__ import annotations

from .app import GameApp
from .domain.cards import ANY_CLASS, CardType, PlayerClass


def validate_app(app: GameApp) -> list[str]:
    """Return list of validation errors discovered in configured app."""
    errors: list[str] = []
    catalog = app.cards.catalog
    card_ids = {card.card_id for card in catalog.iter_cards()}
    base_ids = {card_id.split("__")[0] for card_id in card_ids}

    resource_names = {
        card.resource_config.resource_name
        for card in catalog.iter_cards()
        if card.is_resource_container
    }

    for card in catalog.iter_cards():
        if card.trap_config is not None:
            trap = card.trap_config
            if not 2 <= trap.difficulty <= 13:
                errors.append(
                    f"Card '{card.card_id}' trap difficulty {trap.difficulty} must be within 2-13."
                )
            if trap.damage < 0:
                errors.append(f"Card '{card.card_id}' trap damage cannot be negative.")
            if trap.disarm_class != ANY_CLASS and not isinstance(trap.disarm_class, PlayerClass):
                errors.append(f"Card '{card.card_id}' trap has unknown disarm class '{trap.disarm_class}'.")

        if card.combat_config is not None:
            chance = card.combat_config.def_break_chance
            if not 0 <= chance <= 100:
                errors.append(f"Card '{card.card_id}' defBreakChance {chance} must be within 0-100.")
            if not card.type.is_combat:
                errors.append(f"Card '{card.card_id}' has combatConfig but is not an encounter or boss.")

        if card.enemy_loot is not None and card.enemy_loot.drop_item_id:
            if card.enemy_loot.drop_item_id not in card_ids:
                errors.append(
                    f"Card '{card.card_id}' drops unknown item '{card.enemy_loot.drop_item_id}'."
                )

        if card.planet_config is not None:
            planet = card.planet_config
            for phase_id in planet.phases:
                if phase_id not in card_ids:
                    errors.append(
                        f"Planet '{planet.planet_id}' phase references unknown card '{phase_id}'."
                    )
            if planet.landing_event_id and planet.landing_event_id not in card_ids:
                errors.append(
                    f"Planet '{planet.planet_id}' landing event '{planet.landing_event_id}' is unknown."
                )
            if not planet.phases and not planet.landing_event_id:
                if not catalog.cards_of_type(planet.landing_event_type):
                    errors.append(
                        f"Planet '{planet.planet_id}' has no card of type "
                        f"'{planet.landing_event_type.value}' to land on."
                    )
            if card.type is not CardType.PLANET:
                errors.append(f"Card '{card.card_id}' has planetConfig but is not a planet card.")

        for entry in card.merchant_items:
            if entry.card_id not in card_ids and entry.card_id not in base_ids:
                errors.append(f"Merchant '{card.card_id}' stocks unknown card '{entry.card_id}'.")

        if card.crafting_recipe is not None and card.crafting_recipe.enabled:
            for req in card.crafting_recipe.required_resources:
                if req.resource_name not in resource_names:
                    errors.append(
                        f"Blueprint '{card.card_id}' needs resource '{req.resource_name}' "
                        "that no card provides."
                    )
                if req.amount <= 0:
                    errors.append(
                        f"Blueprint '{card.card_id}' requires non-positive amount of '{req.resource_name}'."
                    )

    combat = app.config.combat
    for rarity, chance in combat.flee_chances.items():
        if not 0 <= chance <= 100:
            errors.append(f"Flee chance for '{rarity}' must be within 0-100.")
    if combat.counter_delay < 0 or combat.flee_delay < 0:
        errors.append("Combat delays cannot be negative.")
    if app.config.crafting.tick_ms <= 0:
        errors.append("Crafting tick must be positive.")
    if app.config.travel.fuel_cost < 0:
        errors.append("Travel fuel cost cannot be negative.")

    return errors


__all__ = ["validate_app"]
