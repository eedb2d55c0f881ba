import pytest

from nexuscards.domain.cards import DilemmaOption, Stat
from nexuscards.domain.dilemmas import DilemmaStatus, success_rewards
from nexuscards.domain.events import DILEMMA_RESOLVED
from nexuscards.domain.exceptions import ActionNotPermitted
from nexuscards.storage.base import PlayerStat
from nexuscards.testing import CardFactory, app_fixture

PLAYER = "scout@nexus.test"


@pytest.fixture()
def app():
    return app_fixture()


@pytest.fixture()
def cards():
    return CardFactory()


@pytest.mark.asyncio()
async def test_certain_option_grants_rewards_and_legacy_effect(app, cards):
    await app.player_service.set_stat(PLAYER, PlayerStat.HP, 50)
    option = DilemmaOption(
        label="Open the crate",
        success_chance=100,
        consequence_text="Supplies inside.",
        rewards=(Stat("GOLD", 30), Stat("HP", 5)),
        effect_type="hp",
        effect_value=10,
    )
    session = app.start_dilemma(PLAYER, cards.dilemma(option))

    outcome = await session.choose(0)

    assert outcome.success is True
    assert outcome.message == "Supplies inside."
    profile = await app.player_service.fetch(PLAYER)
    assert profile.hp == 65
    assert profile.stats[PlayerStat.GOLD.value] == 130
    assert app.feedback.sounds == ["success"]


@pytest.mark.asyncio()
async def test_zero_chance_option_applies_fail_damage(app, cards):
    resolved = []

    async def listener(payload):
        resolved.append(payload)

    app.event_bus.subscribe(DILEMMA_RESOLVED, listener)
    option = DilemmaOption(
        label="Kick the door",
        success_chance=0,
        rewards=(Stat("GOLD", 500),),
        fail_message="Alarm!",
        fail_damage=15,
    )
    session = app.start_dilemma(PLAYER, cards.dilemma(option))

    outcome = await session.choose(0)

    assert outcome.status is DilemmaStatus.FAIL
    assert (outcome.message, outcome.damage) == ("Alarm!", 15)
    profile = await app.player_service.fetch(PLAYER)
    assert profile.hp == 85
    assert profile.stats[PlayerStat.GOLD.value] == 100
    assert resolved[0]["status"] == "fail"


@pytest.mark.asyncio()
async def test_dilemma_resolves_once(app, cards):
    session = app.start_dilemma(PLAYER, cards.dilemma(DilemmaOption("Wait")))
    with pytest.raises(ActionNotPermitted):
        await session.choose(3)
    assert session.status is DilemmaStatus.PENDING

    await session.choose(0)
    with pytest.raises(ActionNotPermitted):
        await session.choose(0)


def test_unsupported_reward_types_are_ignored():
    option = DilemmaOption("Pray", rewards=(Stat("MANA", 10), Stat("gold", 5)), effect_type="none")
    assert success_rewards(option) == (Stat("GOLD", 5),)
