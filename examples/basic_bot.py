"""Ukázkové napojení nexuscards na Telegram a balanční simulaci."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from nexuscards import GameApp, NexusConfig
from nexuscards.diagnostics import CombatSimulator
from nexuscards.domain.events import COMBAT_VICTORY, TRADE_COMPLETED
from nexuscards.domain.stats import StatKey
from nexuscards.loaders import load_catalog_from_json

logger = logging.getLogger(__name__)


async def log_outcome(payload) -> None:
    logger.info("Outcome: %s", dict(payload))


def register(app: GameApp) -> None:
    """Načteme karty a zaregistrujeme posluchače výsledků."""
    catalog_path = Path(__file__).with_name("catalog") / "cards.json"
    load_catalog_from_json(app, catalog_path)

    # Vlastní alias pro zlato z rozšíření hry.
    app.synonyms.alias(StatKey.GOLD, "KREDITY")
    app.event_bus.subscribe(COMBAT_VICTORY, log_outcome)
    app.event_bus.subscribe(TRADE_COMPLETED, log_outcome)


async def simulate() -> None:
    app = GameApp(NexusConfig.from_env())
    register(app)
    result = await CombatSimulator(app, rng=app.rng).simulate("BOSS-WARDEN", fights=200)
    print(f"Výhry: {result.win_rate:.0%}, průměr kol: {result.average_rounds:.1f}")


async def run_bot() -> None:
    from aiogram import Bot, Dispatcher
    from nexuscards.telegram import build_router

    app = GameApp(NexusConfig.from_env())
    register(app)
    await app.init_backend()

    bot = Bot(app.config.bot_token)
    dp = Dispatcher()
    dp.include_router(build_router(app))
    try:
        await dp.start_polling(bot)
    finally:
        await app.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_bot())
