"""Domain event dispatch for resolved game outcomes."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Iterable, Mapping

logger = logging.getLogger(__name__)

OutcomePayload = Mapping[str, Any]
OutcomeListener = Callable[[OutcomePayload], Awaitable[None]]

COMBAT_VICTORY = "combat.victory"
COMBAT_FLED = "combat.fled"
TRAP_RESOLVED = "trap.resolved"
LOOT_CLAIMED = "loot.claimed"
PLANET_PROGRESSED = "planet.progressed"
TRADE_OPENED = "trade.opened"
TRADE_COMPLETED = "trade.completed"
TRADE_CANCELLED = "trade.cancelled"
CRAFT_COMPLETED = "craft.completed"
DILEMMA_RESOLVED = "dilemma.resolved"
MERCHANT_PURCHASE = "merchant.purchase"
MERCHANT_SALE = "merchant.sale"


class EventBus:
    """Async pub-sub through which outcomes reach the persistence collaborator."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[OutcomeListener]] = defaultdict(list)

    def subscribe(self, topic: str, listener: OutcomeListener) -> None:
        self._listeners[topic].append(listener)

    def unsubscribe(self, topic: str, listener: OutcomeListener) -> None:
        listeners = self._listeners.get(topic)
        if listeners and listener in listeners:
            listeners.remove(listener)

    async def publish(self, topic: str, payload: OutcomePayload) -> None:
        listeners = list(self._listeners.get(topic, ()))
        logger.debug("Publishing %s to %d listener(s)", topic, len(listeners))
        for listener in listeners:
            await listener(payload)

    def listeners(self, topic: str) -> Iterable[OutcomeListener]:
        return tuple(self._listeners.get(topic, ()))
