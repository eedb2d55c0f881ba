"""Two-party item trades inside a room."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Callable

from ..storage.base import (
    PlayerRecord,
    PlayerStore,
    TradedItem,
    TransactionRecord,
    TransactionStore,
)
from .events import TRADE_CANCELLED, TRADE_COMPLETED, TRADE_OPENED, EventBus
from .exceptions import ActionNotPermitted, StaleRecord, TradeNotFound
from .inventory import InventoryItem, find_item

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class TradeParticipant:
    player_id: str
    nickname: str | None
    offered_item: InventoryItem | None = None
    is_confirmed: bool = False


@dataclass(slots=True)
class TradeSession:
    trade_id: str
    room_id: str
    participants: tuple[TradeParticipant, TradeParticipant]
    created_at: datetime = field(default_factory=_utcnow)

    def participant(self, player_id: str) -> TradeParticipant:
        for participant in self.participants:
            if participant.player_id == player_id:
                return participant
        raise ActionNotPermitted(f"{player_id} is not part of trade {self.trade_id}")

    def partner_of(self, player_id: str) -> TradeParticipant:
        for participant in self.participants:
            if participant.player_id != player_id:
                return participant
        raise ActionNotPermitted(f"Trade {self.trade_id} has no partner for {player_id}")

    @property
    def all_confirmed(self) -> bool:
        return all(participant.is_confirmed for participant in self.participants)


@dataclass(frozen=True, slots=True)
class TradeResult:
    trade_id: str
    status: str
    transaction: TransactionRecord | None = None


class TradeService:
    """Serialises every trade mutation of a room behind one lock."""

    def __init__(
        self,
        player_store: PlayerStore,
        transaction_store: TransactionStore,
        event_bus: EventBus | None = None,
        *,
        clock: Clock = _utcnow,
    ) -> None:
        self._players = player_store
        self._transactions = transaction_store
        self._event_bus = event_bus
        self._clock = clock
        self._rooms: dict[str, dict[str, TradeSession]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _lock(self, room_id: str) -> AsyncIterator[None]:
        """Hold the room lock; idle rooms are forgotten once the last user leaves."""
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        self._lock_users[room_id] = self._lock_users.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[room_id] -= 1
            if not self._lock_users[room_id]:
                del self._lock_users[room_id]
                del self._locks[room_id]
                if not self._rooms.get(room_id):
                    self._rooms.pop(room_id, None)

    def known_rooms(self) -> list[str]:
        return list(self._rooms)

    def active_trades(self, room_id: str) -> list[TradeSession]:
        return list(self._rooms.get(room_id, {}).values())

    def get_trade(self, room_id: str, trade_id: str) -> TradeSession:
        try:
            return self._rooms[room_id][trade_id]
        except KeyError as exc:
            raise TradeNotFound(f"Trade {trade_id} is not active") from exc

    async def open_trade(
        self,
        room_id: str,
        initiator: tuple[str, str | None],
        target: tuple[str, str | None],
        item: InventoryItem | None = None,
    ) -> TradeSession:
        if initiator[0] == target[0]:
            raise ActionNotPermitted("A player cannot trade with themselves")
        async with self._lock(room_id):
            session = TradeSession(
                trade_id=f"TRADE-{uuid.uuid4().hex[:12]}",
                room_id=room_id,
                participants=(
                    TradeParticipant(initiator[0], initiator[1], offered_item=item),
                    TradeParticipant(target[0], target[1]),
                ),
                created_at=self._clock(),
            )
            self._rooms.setdefault(room_id, {})[session.trade_id] = session
        logger.info("Trade %s opened in %s: %s -> %s", session.trade_id, room_id, initiator[1], target[1])
        await self._publish(
            TRADE_OPENED,
            {
                "room_id": room_id,
                "trade_id": session.trade_id,
                "message": f"{initiator[1]} opened a trade link with {target[1]}.",
            },
        )
        return session

    async def set_offer(
        self, room_id: str, trade_id: str, player_id: str, item: InventoryItem | None
    ) -> TradeSession:
        async with self._lock(room_id):
            session = self.get_trade(room_id, trade_id)
            participant = session.participant(player_id)
            participant.offered_item = item
            # Any offer change, even an identical one, voids both confirmations.
            for entry in session.participants:
                entry.is_confirmed = False
            return session

    async def confirm(
        self, room_id: str, trade_id: str, player_id: str, confirmed: bool = True
    ) -> TradeResult:
        async with self._lock(room_id):
            session = self.get_trade(room_id, trade_id)
            session.participant(player_id).is_confirmed = confirmed
            if not session.all_confirmed:
                return TradeResult(trade_id=trade_id, status="WAITING")
            try:
                transaction = await self._execute(session)
            except StaleRecord:
                for entry in session.participants:
                    entry.is_confirmed = False
                logger.warning("Trade %s aborted: player record changed concurrently", trade_id)
                raise
            del self._rooms[room_id][trade_id]

        first, second = session.participants
        logger.info("Trade %s completed: %s <-> %s", trade_id, first.nickname, second.nickname)
        await self._publish(
            TRADE_COMPLETED,
            {
                "room_id": room_id,
                "trade_id": trade_id,
                "transaction_id": transaction.transaction_id,
                "message": f"Trade confirmed: {first.nickname} <-> {second.nickname}",
            },
        )
        return TradeResult(trade_id=trade_id, status=transaction.status, transaction=transaction)

    async def cancel(self, room_id: str, trade_id: str, player_id: str | None = None) -> None:
        async with self._lock(room_id):
            session = self.get_trade(room_id, trade_id)
            if player_id is not None:
                session.participant(player_id)
            del self._rooms[room_id][trade_id]
        logger.info("Trade %s cancelled in %s", trade_id, room_id)
        await self._publish(TRADE_CANCELLED, {"room_id": room_id, "trade_id": trade_id})

    async def _execute(self, session: TradeSession) -> TransactionRecord:
        first, second = session.participants
        first_record = await self._players.get_or_create(first.player_id)
        second_record = await self._players.get_or_create(second.player_id)
        first_version = first_record.version
        second_version = second_record.version

        moved_to_second = _move(first, first_record, second_record)
        moved_to_first = _move(second, second_record, first_record)

        await self._players.save(first_record, expected_version=first_version)
        try:
            await self._players.save(second_record, expected_version=second_version)
        except StaleRecord:
            await self._revert(first.player_id, moved_to_second, moved_to_first)
            raise

        transaction = TransactionRecord(
            transaction_id=f"TX-{uuid.uuid4().hex[:12]}",
            room_id=session.room_id,
            timestamp=self._clock(),
            participants=[(first.player_id, first.nickname), (second.player_id, second.nickname)],
            items=[
                TradedItem(
                    original_owner=entry.player_id,
                    item_id=moved.instance_id if moved else None,
                    item_title=moved.title if moved else None,
                )
                for entry, moved in ((first, moved_to_second), (second, moved_to_first))
            ],
            status="COMPLETED",
        )
        await self._transactions.add_record(transaction)
        return transaction

    async def _revert(
        self,
        player_id: str,
        given: InventoryItem | None,
        received: InventoryItem | None,
    ) -> None:
        record = await self._players.get_or_create(player_id)
        if received is not None:
            record.inventory = [
                item for item in record.inventory if item.instance_id != received.instance_id
            ]
        if given is not None:
            record.inventory.append(given)
        await self._players.save(record)

    async def _publish(self, topic: str, payload: dict) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(topic, payload)


def _move(
    giver: TradeParticipant, giver_record: PlayerRecord, receiver_record: PlayerRecord
) -> InventoryItem | None:
    """Move the offered instance by exact id; a missing item skips this side."""
    offered = giver.offered_item
    if offered is None:
        return None
    stored = find_item(giver_record.inventory, offered.instance_id)
    if stored is None:
        logger.warning(
            "Trade item %s no longer owned by %s, skipping", offered.instance_id, giver.player_id
        )
        return None
    giver_record.inventory = [
        item for item in giver_record.inventory if item.instance_id != offered.instance_id
    ]
    receiver_record.inventory.append(stored)
    return stored
