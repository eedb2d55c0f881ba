"""Keyboard helpers for the nexuscards bot."""

from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup


def roll_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="🎲 Hodit znovu", callback_data="nexus:roll")],
        ]
    )


def trade_keyboard(trade_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="✅ Potvrdit", callback_data=f"nexus:trade:confirm:{trade_id}"),
                InlineKeyboardButton(text="↩️ Zrušit potvrzení", callback_data=f"nexus:trade:unconfirm:{trade_id}"),
            ],
            [InlineKeyboardButton(text="❌ Zrušit obchod", callback_data=f"nexus:trade:cancel:{trade_id}")],
        ]
    )


def planets_keyboard(planet_ids: list[str]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=f"🚀 {planet_id}", callback_data=f"nexus:travel:{planet_id}")]
            for planet_id in planet_ids
        ]
    )


def parse_trade_callback(data: str | None) -> tuple[str, str] | None:
    """Split ``nexus:trade:<action>:<trade_id>`` into its action and trade id."""
    if not data or not data.startswith("nexus:trade:"):
        return None
    parts = data.split(":", 3)
    if len(parts) != 4 or not parts[3]:
        return None
    return parts[2], parts[3]
