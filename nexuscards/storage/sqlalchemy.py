"""SQLAlchemy storage backend for nexuscards."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Sequence

from sqlalchemy import DateTime, Integer, JSON, String, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..domain.cards import PlayerClass
from ..domain.exceptions import StaleRecord
from ..loaders.json_loader import dump_item, parse_item
from .base import PlayerRecord, PlayerStore, TradedItem, TransactionRecord, TransactionStore
from .memory import RecordSeed


class Base(DeclarativeBase):
    pass


class PlayerTable(Base):
    __tablename__ = "nexus_players"

    player_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    player_class: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stats: Mapped[dict] = mapped_column(JSON, default=dict)
    inventory: Mapped[list] = mapped_column(JSON, default=list)
    version: Mapped[int] = mapped_column(Integer, default=0)


class TransactionTable(Base):
    __tablename__ = "nexus_transactions"

    transaction_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    room_id: Mapped[str] = mapped_column(String(255), index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    first_player_id: Mapped[str] = mapped_column(String(255), index=True)
    second_player_id: Mapped[str] = mapped_column(String(255), index=True)
    participants: Mapped[list] = mapped_column(JSON)
    items: Mapped[list] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(32), default="COMPLETED")


def _to_record(row: PlayerTable) -> PlayerRecord:
    return PlayerRecord(
        player_id=row.player_id,
        nickname=row.nickname,
        player_class=PlayerClass(row.player_class) if row.player_class else None,
        stats={key: int(value) for key, value in (row.stats or {}).items()},
        inventory=[parse_item(entry) for entry in row.inventory or []],
        version=row.version,
    )


def _row_values(record: PlayerRecord) -> dict:
    return {
        "nickname": record.nickname,
        "player_class": record.player_class.value if record.player_class else None,
        "stats": dict(record.stats),
        "inventory": [dump_item(item) for item in record.inventory],
    }


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo, future=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def player_store(self, *, seed: RecordSeed | None = None) -> "AsyncSQLAlchemyPlayerStore":
        return AsyncSQLAlchemyPlayerStore(self._session_factory, seed=seed)

    def transaction_store(self) -> "AsyncSQLAlchemyTransactionStore":
        return AsyncSQLAlchemyTransactionStore(self._session_factory)


class AsyncSQLAlchemyPlayerStore(PlayerStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        seed: RecordSeed | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._seed = seed

    async def get_or_create(self, player_id: str, nickname: str | None = None) -> PlayerRecord:
        async with self._session_factory() as session:
            row = await session.get(PlayerTable, player_id)
            if not row:
                fresh = PlayerRecord(player_id=player_id, nickname=nickname)
                if self._seed is not None:
                    self._seed(fresh)
                row = PlayerTable(player_id=player_id, version=0, **_row_values(fresh))
                session.add(row)
                await session.commit()
            if nickname and row.nickname != nickname:
                row.nickname = nickname
                await session.commit()
            return _to_record(row)

    async def save(self, record: PlayerRecord, *, expected_version: int | None = None) -> None:
        async with self._session_factory() as session:
            stmt = update(PlayerTable).where(PlayerTable.player_id == record.player_id)
            if expected_version is not None:
                stmt = stmt.where(PlayerTable.version == expected_version)
            stmt = stmt.values(version=PlayerTable.version + 1, **_row_values(record))
            result = await session.execute(stmt)
            if result.rowcount == 0:
                existing = await session.get(PlayerTable, record.player_id)
                if existing is not None or expected_version not in (None, 0):
                    actual = existing.version if existing is not None else 0
                    await session.rollback()
                    raise StaleRecord(record.player_id, expected_version or 0, actual)
                session.add(PlayerTable(player_id=record.player_id, version=1, **_row_values(record)))
                await session.commit()
                record.version = 1
                return
            await session.commit()
            record.version = (record.version if expected_version is None else expected_version) + 1


class AsyncSQLAlchemyTransactionStore(TransactionStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_record(self, record: TransactionRecord) -> None:
        (first_id, _), (second_id, _) = record.participants
        async with self._session_factory() as session:
            session.add(
                TransactionTable(
                    transaction_id=record.transaction_id,
                    room_id=record.room_id,
                    timestamp=record.timestamp,
                    first_player_id=first_id,
                    second_player_id=second_id,
                    participants=[[pid, nickname] for pid, nickname in record.participants],
                    items=[
                        {
                            "originalOwner": item.original_owner,
                            "itemId": item.item_id,
                            "itemTitle": item.item_title,
                        }
                        for item in record.items
                    ],
                    status=record.status,
                )
            )
            await session.commit()

    async def recent_for_player(self, player_id: str, limit: int = 20) -> Sequence[TransactionRecord]:
        async with self._session_factory() as session:
            stmt = (
                select(TransactionTable)
                .where(
                    or_(
                        TransactionTable.first_player_id == player_id,
                        TransactionTable.second_player_id == player_id,
                    )
                )
                .order_by(TransactionTable.timestamp.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [
                TransactionRecord(
                    transaction_id=row.transaction_id,
                    room_id=row.room_id,
                    timestamp=row.timestamp,
                    participants=[(pid, nickname) for pid, nickname in row.participants],
                    items=[
                        TradedItem(
                            original_owner=item["originalOwner"],
                            item_id=item.get("itemId"),
                            item_title=item.get("itemTitle"),
                        )
                        for item in row.items
                    ],
                    status=row.status,
                )
                for row in rows
            ]
