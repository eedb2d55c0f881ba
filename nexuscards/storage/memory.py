"""In-memory storage backend for nexuscards."""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from typing import Callable, Deque, Sequence

from ..domain.exceptions import StaleRecord
from .base import PlayerRecord, PlayerStore, TransactionRecord, TransactionStore

RecordSeed = Callable[[PlayerRecord], None]


def _detach(record: PlayerRecord) -> PlayerRecord:
    return replace(
        record,
        stats=dict(record.stats),
        inventory=[item.copy() for item in record.inventory],
    )


class InMemoryPlayerStore(PlayerStore):
    """Keeps records in a dict and hands out copies, like a document store."""

    def __init__(self, *, seed: RecordSeed | None = None) -> None:
        self._records: dict[str, PlayerRecord] = {}
        self._seed = seed

    async def get_or_create(self, player_id: str, nickname: str | None = None) -> PlayerRecord:
        if player_id not in self._records:
            record = PlayerRecord(player_id=player_id, nickname=nickname)
            if self._seed is not None:
                self._seed(record)
            self._records[player_id] = record
        stored = self._records[player_id]
        if nickname and stored.nickname != nickname:
            stored.nickname = nickname
        return _detach(stored)

    async def save(self, record: PlayerRecord, *, expected_version: int | None = None) -> None:
        current = self._records.get(record.player_id)
        current_version = current.version if current else 0
        if expected_version is not None and expected_version != current_version:
            raise StaleRecord(record.player_id, expected_version, current_version)
        record.version = current_version + 1
        self._records[record.player_id] = _detach(record)


class InMemoryTransactionStore(TransactionStore):
    def __init__(self, *, maxlen: int = 5000) -> None:
        self._history: Deque[TransactionRecord] = deque(maxlen=maxlen)

    async def add_record(self, record: TransactionRecord) -> None:
        self._history.append(record)

    async def recent_for_player(self, player_id: str, limit: int = 20) -> Sequence[TransactionRecord]:
        filtered = [
            rec
            for rec in reversed(self._history)
            if any(pid == player_id for pid, _ in rec.participants)
        ]
        return filtered[:limit]

    def dump(self) -> list[TransactionRecord]:
        return list(self._history)
