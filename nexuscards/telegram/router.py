"""Factory helpers to wire nexuscards services into aiogram."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from aiogram import Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message, User

from ..app import GameApp
from ..domain.dice import DiceRoll, RollSource
from ..domain.exceptions import InvalidRoll, NexusError, TradeNotFound
from ..domain.inventory import InventoryItem, planet_items, stack_inventory
from ..domain.planets import LandingSource, LandingTarget, is_complete
from ..domain.player import PlayerProfile
from ..domain.trade import TradeResult, TradeSession
from ..storage.base import PlayerStat
from .keyboards import parse_trade_callback, planets_keyboard, roll_keyboard, trade_keyboard

logger = logging.getLogger(__name__)


class RoomDirectory:
    """Nicknames seen per chat, used to address trade partners."""

    def __init__(self) -> None:
        self._rooms: dict[str, dict[str, tuple[str, str]]] = {}

    def remember(self, room_id: str, player_id: str, nickname: str) -> None:
        self._rooms.setdefault(room_id, {})[nickname.lower()] = (player_id, nickname)

    def lookup(self, room_id: str, nickname: str) -> tuple[str, str] | None:
        return self._rooms.get(room_id, {}).get(nickname.lstrip("@").lower())


def player_identity(user: User) -> tuple[str, str]:
    nickname = user.username or user.full_name or str(user.id)
    return f"tg:{user.id}", nickname


def build_router(app: GameApp, *, directory: RoomDirectory | None = None) -> Router:
    router = Router()
    players = app.player_service
    trades = app.trade_service
    rooms = directory or RoomDirectory()

    async def identify(message: Message) -> tuple[str, str, str] | None:
        user = message.from_user
        if not user:
            return None
        player_id, nickname = player_identity(user)
        room_id = str(message.chat.id)
        rooms.remember(room_id, player_id, nickname)
        await players.register(player_id, nickname)
        return room_id, player_id, nickname

    @router.message(Command("start"))
    async def handle_start(message: Message) -> None:
        await identify(message)
        await reply(message, render_help_message())

    @router.message(Command("help"))
    async def handle_help(message: Message) -> None:
        await reply(message, render_help_message())

    @router.message(Command("profile"))
    async def handle_profile(message: Message) -> None:
        identity = await identify(message)
        if not identity:
            return
        profile = await players.fetch(identity[1])
        await reply(message, format_profile_message(profile))

    @router.message(Command("roll"))
    async def handle_roll(message: Message) -> None:
        identity = await identify(message)
        if not identity:
            return
        argument = extract_argument(message.text)
        dice = app.dice()
        try:
            roll = dice.manual(argument) if argument else await dice.roll_virtual()
        except InvalidRoll as exc:
            await reply(message, f"⚠️ Neplatný hod: {exc.value!r}. Zadej součet 2 až 12.")
            return
        await reply(message, format_roll_message(roll), reply_markup=roll_keyboard())

    @router.callback_query(lambda c: c.data == "nexus:roll")
    async def handle_roll_again(callback: CallbackQuery) -> None:
        roll = await app.dice().roll_virtual()
        await callback.answer()
        if callback.message:
            await reply(callback.message, format_roll_message(roll), reply_markup=roll_keyboard())

    @router.message(Command("trade"))
    async def handle_trade(message: Message) -> None:
        identity = await identify(message)
        if not identity:
            return
        room_id, player_id, nickname = identity
        args = extract_arguments(message.text)
        if not args:
            await reply(message, "Použití: /trade <přezdívka> [id předmětu]")
            return
        partner = rooms.lookup(room_id, args[0])
        if partner is None:
            await reply(message, f"Hráč {args[0]} v tomto sektoru není.")
            return
        item = None
        if len(args) > 1:
            item = await find_owned_item(app, player_id, args[1])
            if item is None:
                await reply(message, f"Předmět {args[1]} nemáš v inventáři.")
                return
        try:
            session = await trades.open_trade(room_id, (player_id, nickname), partner, item)
        except NexusError as exc:
            await reply(message, f"⚠️ {exc}")
            return
        await reply(message, format_trade_message(session), reply_markup=trade_keyboard(session.trade_id))

    @router.message(Command("offer"))
    async def handle_offer(message: Message) -> None:
        identity = await identify(message)
        if not identity:
            return
        room_id, player_id, _ = identity
        args = extract_arguments(message.text)
        if not args:
            await reply(message, "Použití: /offer <id obchodu> [id předmětu]")
            return
        item = None
        if len(args) > 1:
            item = await find_owned_item(app, player_id, args[1])
            if item is None:
                await reply(message, f"Předmět {args[1]} nemáš v inventáři.")
                return
        try:
            session = await trades.set_offer(room_id, args[0], player_id, item)
        except NexusError as exc:
            await reply(message, f"⚠️ {exc}")
            return
        await reply(message, format_trade_message(session), reply_markup=trade_keyboard(session.trade_id))

    async def set_confirmation(message: Message, player_id: str, trade_id: str, confirmed: bool) -> None:
        room_id = str(message.chat.id)
        try:
            result = await trades.confirm(room_id, trade_id, player_id, confirmed)
        except TradeNotFound:
            await reply(message, "Obchod už není aktivní.")
            return
        except NexusError as exc:
            await reply(message, f"⚠️ {exc}")
            return
        if result.transaction is not None:
            await reply(message, format_trade_result(result))
        else:
            await reply(
                message,
                format_trade_message(trades.get_trade(room_id, trade_id)),
                reply_markup=trade_keyboard(trade_id),
            )

    @router.message(Command("confirm"))
    async def handle_confirm(message: Message) -> None:
        identity = await identify(message)
        trade_id = extract_argument(message.text)
        if identity and trade_id:
            await set_confirmation(message, identity[1], trade_id, True)

    @router.message(Command("unconfirm"))
    async def handle_unconfirm(message: Message) -> None:
        identity = await identify(message)
        trade_id = extract_argument(message.text)
        if identity and trade_id:
            await set_confirmation(message, identity[1], trade_id, False)

    @router.message(Command("canceltrade"))
    async def handle_cancel(message: Message) -> None:
        identity = await identify(message)
        trade_id = extract_argument(message.text)
        if not identity or not trade_id:
            return
        try:
            await trades.cancel(identity[0], trade_id, identity[1])
        except NexusError as exc:
            await reply(message, f"⚠️ {exc}")
            return
        await reply(message, "❌ Obchod zrušen.")

    @router.callback_query(lambda c: bool(parse_trade_callback(c.data)))
    async def handle_trade_callback(callback: CallbackQuery) -> None:
        parsed = parse_trade_callback(callback.data)
        if not parsed or not callback.from_user or not callback.message:
            return
        action, trade_id = parsed
        player_id, _ = player_identity(callback.from_user)
        await callback.answer()
        if action == "cancel":
            try:
                await trades.cancel(str(callback.message.chat.id), trade_id, player_id)
            except NexusError as exc:
                await reply(callback.message, f"⚠️ {exc}")
                return
            await reply(callback.message, "❌ Obchod zrušen.")
            return
        await set_confirmation(callback.message, player_id, trade_id, action == "confirm")

    @router.message(Command("planets"))
    async def handle_planets(message: Message) -> None:
        identity = await identify(message)
        if not identity:
            return
        profile = await players.fetch(identity[1])
        navs = planet_items(profile.inventory)
        open_ids = [nav.card.planet_config.planet_id for nav in navs if not is_complete(nav)]
        await reply(
            message,
            format_planets_message(navs),
            reply_markup=planets_keyboard(open_ids) if open_ids else None,
        )

    async def travel(message: Message, player_id: str, planet_id: str) -> None:
        try:
            target = await app.planet_service.travel(player_id, planet_id)
        except NexusError as exc:
            await reply(message, f"⚠️ {exc}")
            return
        await reply(message, format_landing_message(planet_id, target))

    @router.message(Command("travel"))
    async def handle_travel(message: Message) -> None:
        identity = await identify(message)
        planet_id = extract_argument(message.text)
        if identity and planet_id:
            await travel(message, identity[1], planet_id)

    @router.callback_query(lambda c: bool(c.data and c.data.startswith("nexus:travel:")))
    async def handle_travel_callback(callback: CallbackQuery) -> None:
        if not callback.from_user or not callback.message or not callback.data:
            return
        player_id, _ = player_identity(callback.from_user)
        await callback.answer()
        await travel(callback.message, player_id, callback.data.split(":", 2)[2])

    return router


async def reply(message: Message, text: str, **kwargs) -> bool:
    """Answer a message; Telegram failures are logged and reported as False."""
    try:
        await message.answer(text, **kwargs)
    except TelegramAPIError as exc:
        logger.warning("Telegram answer failed in chat %s: %s", message.chat.id, exc)
        return False
    return True


async def find_owned_item(app: GameApp, player_id: str, instance_id: str) -> InventoryItem | None:
    profile = await app.player_service.fetch(player_id)
    for item in profile.inventory:
        if item.instance_id == instance_id:
            return item
    return None


def extract_arguments(text: str | None) -> list[str]:
    if not text:
        return []
    return text.strip().split()[1:]


def extract_argument(text: str | None) -> str | None:
    args = extract_arguments(text)
    return args[0] if args else None


def render_help_message() -> str:
    return "\n".join(
        [
            "Vítej na palubě! Tento bot doprovází karetní hru Nexus.",
            "",
            "Příkazy:",
            "• /roll [součet] — hodit 2k6 nebo zadat fyzický hod",
            "• /profile — životy, štít, palivo, kyslík a inventář",
            "• /trade <přezdívka> [předmět] — zahájit obchod",
            "• /offer <obchod> [předmět] — změnit nabídku",
            "• /confirm <obchod>, /unconfirm <obchod>, /canceltrade <obchod>",
            "• /planets — navigační data planet",
            "• /travel <planeta> — přistát na planetě",
        ]
    )


def format_roll_message(roll: DiceRoll) -> str:
    source = "fyzický hod" if roll.source is RollSource.MANUAL else "virtuální kostky"
    return f"🎲 {roll.first} + {roll.second} = {roll.total} ({source})"


def format_inventory_lines(items: Sequence[InventoryItem]) -> list[str]:
    lines: list[str] = []
    for entry in stack_inventory(items):
        item = entry.representative
        if entry.resource_amount is not None:
            label = item.card.resource_config.custom_label or item.resource_name
            lines.append(f"• {label}: {entry.resource_amount}")
        elif entry.quantity > 1:
            lines.append(f"• {item.title} x{entry.quantity}")
        else:
            lines.append(f"• {item.title} ({item.instance_id})")
    return lines


def format_profile_message(profile: PlayerProfile) -> str:
    stats = profile.stats
    lines = [
        f"👤 {profile.nickname or profile.player_id}",
        f"❤️ HP: {stats.get(PlayerStat.HP.value, 0)}  🛡️ Štít: {stats.get(PlayerStat.ARMOR.value, 0)}",
        f"⛽ Palivo: {stats.get(PlayerStat.FUEL.value, 0)}  🫧 O2: {stats.get(PlayerStat.OXYGEN.value, 0)}",
        f"💰 Zlato: {stats.get(PlayerStat.GOLD.value, 0)}",
    ]
    if profile.player_class is not None:
        lines.insert(1, f"🎖️ Třída: {profile.player_class.value}")
    lines.append("")
    inventory = format_inventory_lines(profile.inventory)
    if inventory:
        lines.append("🎒 Inventář:")
        lines.extend(inventory)
    else:
        lines.append("🎒 Inventář je prázdný.")
    return "\n".join(lines)


def format_trade_message(session: TradeSession) -> str:
    lines = [f"🔄 Obchod {session.trade_id}"]
    for participant in session.participants:
        offer = participant.offered_item.title if participant.offered_item else "nic"
        mark = "✅" if participant.is_confirmed else "⏳"
        lines.append(f"{mark} {participant.nickname}: {offer}")
    return "\n".join(lines)


def format_trade_result(result: TradeResult) -> str:
    transaction = result.transaction
    if transaction is None:
        return f"⏳ Obchod {result.trade_id} čeká na potvrzení."
    (_, first), (_, second) = transaction.participants
    return f"✅ Výměna potvrzena: {first} <-> {second}"


def format_planets_message(navs: Iterable[InventoryItem]) -> str:
    lines = ["🪐 Navigační data:"]
    count = 0
    for nav in navs:
        count += 1
        config = nav.card.planet_config
        if not config.phases:
            lines.append(f"• {nav.title} ({config.planet_id})")
        elif is_complete(nav):
            lines.append(f"• {nav.title} ({config.planet_id}): prozkoumáno ✅")
        else:
            lines.append(
                f"• {nav.title} ({config.planet_id}): fáze {nav.planet_progress + 1}/{len(config.phases)}"
            )
    if not count:
        return "Nemáš žádná navigační data planet."
    return "\n".join(lines)


def format_landing_message(planet_id: str, target: LandingTarget) -> str:
    lines = [f"🚀 Přistání na {planet_id}. Zbývající palivo: {target.fuel_left}"]
    if target.card is None:
        lines.append("Na povrchu nebylo nic nalezeno.")
    elif target.source is LandingSource.PHASE:
        lines.append(f"Fáze {target.phase_index + 1}: {target.card.title}")
    else:
        lines.append(f"Událost: {target.card.title}")
    return "\n".join(lines)
