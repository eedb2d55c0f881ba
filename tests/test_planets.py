import pytest

from nexuscards.domain.cards import CardType
from nexuscards.domain.events import PLANET_PROGRESSED
from nexuscards.domain.exceptions import ActionNotPermitted, InsufficientFuel, PlanetComplete
from nexuscards.domain.inventory import InventoryItem
from nexuscards.domain.planets import LandingSource, advance, is_complete, next_phase_event
from nexuscards.storage.base import PlayerStat
from nexuscards.testing import CardFactory, app_fixture

PLAYER = "navigator@nexus.test"


@pytest.fixture()
def app():
    return app_fixture()


@pytest.fixture()
def cards():
    return CardFactory()


def _events(app, cards, count):
    events = [cards.enemy(hp=10) for _ in range(count)]
    for card in events:
        app.cards.card(card)
    return events


def test_phase_helpers(cards):
    nav = InventoryItem.from_card(cards.planet("kepler", ["E1", "E2", "E3"]))
    nav.planet_progress = 2
    assert next_phase_event(nav) == "E3"
    assert not is_complete(nav)

    finished = advance(nav)
    assert finished.planet_progress == 3
    assert nav.planet_progress == 2
    assert is_complete(finished)
    assert next_phase_event(finished) is None
    with pytest.raises(PlanetComplete):
        advance(finished)


def test_planet_without_phases_never_completes(cards):
    nav = InventoryItem.from_card(cards.planet("legacy"))
    assert not is_complete(nav)
    assert advance(nav).planet_progress == 0


@pytest.mark.asyncio()
async def test_travel_walks_phases_and_burns_fuel(app, cards):
    events = _events(app, cards, 3)
    planet = cards.planet("kepler", [card.card_id for card in events])
    nav = await app.player_service.add_item(PLAYER, planet)
    progressed = []

    async def listener(payload):
        progressed.append(payload["progress"])

    app.event_bus.subscribe(PLANET_PROGRESSED, listener)

    for index, expected in enumerate(events):
        target = await app.planet_service.travel(PLAYER, "kepler")
        assert target.source is LandingSource.PHASE
        assert target.card == expected
        assert target.phase_index == index
        await app.planet_service.complete_phase(PLAYER, nav.instance_id)

    assert progressed == [1, 2, 3]
    assert target.fuel_left == 40
    with pytest.raises(PlanetComplete):
        await app.planet_service.travel(PLAYER, "kepler")
    assert (await app.player_service.fetch(PLAYER)).stats["fuel"] == 40


@pytest.mark.asyncio()
async def test_travel_without_fuel_is_refused(app, cards):
    await app.player_service.add_item(PLAYER, cards.planet("kepler", ["E1"]))
    await app.player_service.set_stat(PLAYER, PlayerStat.FUEL, 19)
    with pytest.raises(InsufficientFuel) as excinfo:
        await app.planet_service.travel(PLAYER, "kepler")
    assert (excinfo.value.available, excinfo.value.required) == (19, 20)
    assert (await app.player_service.fetch(PLAYER)).stats["fuel"] == 19


@pytest.mark.asyncio()
async def test_travel_needs_navigation_data(app):
    with pytest.raises(ActionNotPermitted):
        await app.planet_service.travel(PLAYER, "nowhere")


@pytest.mark.asyncio()
async def test_landing_event_then_random_fallback(app, cards):
    (fixed,) = _events(app, cards, 1)
    await app.player_service.add_item(PLAYER, cards.planet("alpha", landing_event_id=fixed.card_id))
    target = await app.planet_service.travel(PLAYER, "alpha")
    assert (target.source, target.card) == (LandingSource.LANDING_EVENT, fixed)

    await app.player_service.add_item(PLAYER, cards.planet("beta"))
    target = await app.planet_service.travel(PLAYER, "beta")
    assert target.source is LandingSource.RANDOM
    assert target.card.type is CardType.ENCOUNTER

    await app.player_service.add_item(
        PLAYER, cards.planet("gamma", landing_event_type=CardType.MERCHANT)
    )
    target = await app.planet_service.travel(PLAYER, "gamma")
    assert target.source is LandingSource.NONE
    assert target.card is None


@pytest.mark.asyncio()
async def test_complete_phase_on_unknown_item(app):
    with pytest.raises(ActionNotPermitted):
        await app.planet_service.complete_phase(PLAYER, "missing")
