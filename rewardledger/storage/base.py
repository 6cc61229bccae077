"""Storage abstractions used by the ledger services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

# Fields a grant may touch through ``compare_and_set``.
GRANT_FIELDS = frozenset(
    {
        "last_share_time",
        "last_follow_time",
        "last_mini_app_time",
        "has_followed",
        "gift_box_claims_in_period",
        "last_gift_box_update",
    }
)


@dataclass(slots=True)
class BoosterTransaction:
    fid: int
    kind: str
    quantity: int
    transaction_id: str
    timestamp: int


@dataclass(slots=True)
class PlayerRecord:
    fid: int
    last_share_time: int | None = None
    last_follow_time: int | None = None
    last_mini_app_time: int | None = None
    has_followed: bool = False
    gift_box_claims_in_period: int = 0
    last_gift_box_update: int | None = None
    boosters: dict[str, int] = field(default_factory=dict)
    booster_transactions: list[BoosterTransaction] = field(default_factory=list)
    updated_at: int | None = None
    version: int = 0


class StorageError(RuntimeError):
    """Base class for storage failures."""


class StorageUnavailable(StorageError):
    """The backing store could not be reached."""


class PlayerNotRegistered(StorageError):
    def __init__(self, fid: int) -> None:
        super().__init__(f"Player {fid} has no record")
        self.fid = fid


class TransactionAlreadyRecorded(StorageError):
    """Raised by the unique transaction index on a second insert."""

    def __init__(self, transaction_id: str, prior: BoosterTransaction | None) -> None:
        super().__init__(f"Transaction {transaction_id} already recorded")
        self.transaction_id = transaction_id
        self.prior = prior


class BalanceTooLow(StorageError):
    def __init__(self, kind: str, available: int, requested: int) -> None:
        super().__init__(f"Insufficient {kind}: have {available}, need {requested}")
        self.kind = kind
        self.available = available
        self.requested = requested


def check_grant_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - GRANT_FIELDS
    if unknown:
        raise ValueError(f"Fields {sorted(unknown)} cannot be updated by a grant")


class PlayerStore(Protocol):
    async def get(self, fid: int) -> PlayerRecord | None:
        ...

    async def ensure(self, fid: int) -> PlayerRecord:
        ...

    async def compare_and_set(
        self, fid: int, expected_version: int, fields: Mapping[str, Any], *, timestamp: int
    ) -> bool:
        ...

    async def credit_boosters(
        self, fid: int, kind: str, quantity: int, transaction_id: str, timestamp: int
    ) -> int:
        ...

    async def debit_boosters(
        self, fid: int, kind: str, quantity: int, timestamp: int
    ) -> dict[str, int]:
        ...

    async def find_transaction(self, transaction_id: str) -> BoosterTransaction | None:
        ...
