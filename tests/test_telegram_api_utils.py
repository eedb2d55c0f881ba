from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import TelegramForbiddenError
from aiogram.methods import SendMessage
from aiogram.types import User

from nexuscards.telegram.keyboards import parse_trade_callback, planets_keyboard, trade_keyboard
from nexuscards.telegram.router import (
    RoomDirectory,
    extract_argument,
    extract_arguments,
    player_identity,
    reply,
)


def _forbidden() -> TelegramForbiddenError:
    return TelegramForbiddenError(
        method=SendMessage(chat_id=42, text="ahoj"), message="bot was blocked by the user"
    )


def _message(answer):
    return SimpleNamespace(answer=answer, chat=SimpleNamespace(id=42))


@pytest.mark.asyncio()
async def test_reply_returns_true_on_success():
    answer = AsyncMock(return_value=None)
    assert await reply(_message(answer), "ahoj") is True
    answer.assert_awaited_once_with("ahoj")


@pytest.mark.asyncio()
async def test_reply_swallows_telegram_errors(caplog):
    answer = AsyncMock(side_effect=_forbidden())
    with caplog.at_level("WARNING", logger="nexuscards.telegram.router"):
        assert await reply(_message(answer), "ahoj") is False
    assert "bot was blocked by the user" in caplog.text


def test_trade_callbacks_round_trip():
    markup = trade_keyboard("TRADE-abc")
    data = [button.callback_data for row in markup.inline_keyboard for button in row]
    assert [parse_trade_callback(item) for item in data] == [
        ("confirm", "TRADE-abc"),
        ("unconfirm", "TRADE-abc"),
        ("cancel", "TRADE-abc"),
    ]
    assert parse_trade_callback("nexus:roll") is None
    assert parse_trade_callback("nexus:trade:confirm:") is None
    assert parse_trade_callback(None) is None


def test_planets_keyboard_has_a_row_per_planet():
    markup = planets_keyboard(["kepler", "vega"])
    assert [row[0].callback_data for row in markup.inline_keyboard] == [
        "nexus:travel:kepler",
        "nexus:travel:vega",
    ]


def test_room_directory_is_case_insensitive():
    rooms = RoomDirectory()
    rooms.remember("1", "tg:7", "Nova")
    assert rooms.lookup("1", "@nova") == ("tg:7", "Nova")
    assert rooms.lookup("2", "nova") is None


def test_player_identity_prefers_username():
    assert player_identity(User(id=7, is_bot=False, first_name="Ada", username="nova")) == (
        "tg:7",
        "nova",
    )
    assert player_identity(User(id=8, is_bot=False, first_name="Ada")) == ("tg:8", "Ada")


def test_extract_arguments():
    assert extract_arguments("/travel kepler now") == ["kepler", "now"]
    assert extract_argument("/roll") is None
    assert extract_arguments(None) == []
