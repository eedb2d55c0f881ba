"""Storage backends for nexuscards."""

from .base import (
    PlayerRecord,
    PlayerStat,
    PlayerStore,
    TradedItem,
    TransactionRecord,
    TransactionStore,
)
from .memory import InMemoryPlayerStore, InMemoryTransactionStore
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "PlayerRecord",
    "PlayerStat",
    "PlayerStore",
    "TradedItem",
    "TransactionRecord",
    "TransactionStore",
    "InMemoryPlayerStore",
    "InMemoryTransactionStore",
    "AsyncSQLAlchemyStorage",
]
