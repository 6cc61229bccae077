"""Storage backends for the reward ledger."""

from .base import (
    BalanceTooLow,
    BoosterTransaction,
    PlayerNotRegistered,
    PlayerRecord,
    PlayerStore,
    StorageError,
    StorageUnavailable,
    TransactionAlreadyRecorded,
)
from .memory import InMemoryPlayerStore
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "BalanceTooLow",
    "BoosterTransaction",
    "PlayerNotRegistered",
    "PlayerRecord",
    "PlayerStore",
    "StorageError",
    "StorageUnavailable",
    "TransactionAlreadyRecorded",
    "InMemoryPlayerStore",
    "AsyncSQLAlchemyStorage",
]
