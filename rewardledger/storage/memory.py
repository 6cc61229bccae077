"""In-memory storage backend.

Every operation completes without yielding to the event loop, so each call is
atomic with respect to other coroutines sharing the store.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from .base import (
    BalanceTooLow,
    BoosterTransaction,
    PlayerNotRegistered,
    PlayerRecord,
    PlayerStore,
    TransactionAlreadyRecorded,
    check_grant_fields,
)


class InMemoryPlayerStore(PlayerStore):
    def __init__(self) -> None:
        self._records: dict[int, PlayerRecord] = {}
        self._transactions: dict[str, BoosterTransaction] = {}

    async def get(self, fid: int) -> PlayerRecord | None:
        record = self._records.get(fid)
        return _copy(record) if record else None

    async def ensure(self, fid: int) -> PlayerRecord:
        if fid not in self._records:
            self._records[fid] = PlayerRecord(fid=fid)
        return _copy(self._records[fid])

    async def compare_and_set(
        self, fid: int, expected_version: int, fields: Mapping[str, Any], *, timestamp: int
    ) -> bool:
        check_grant_fields(fields)
        record = self._records.get(fid)
        if record is None or record.version != expected_version:
            return False
        for name, value in fields.items():
            setattr(record, name, value)
        record.version += 1
        record.updated_at = timestamp
        return True

    async def credit_boosters(
        self, fid: int, kind: str, quantity: int, transaction_id: str, timestamp: int
    ) -> int:
        if transaction_id in self._transactions:
            raise TransactionAlreadyRecorded(transaction_id, self._transactions[transaction_id])
        record = self._records.get(fid)
        if record is None:
            raise PlayerNotRegistered(fid)
        entry = BoosterTransaction(
            fid=fid,
            kind=kind,
            quantity=quantity,
            transaction_id=transaction_id,
            timestamp=timestamp,
        )
        self._transactions[transaction_id] = entry
        record.booster_transactions.append(entry)
        record.boosters[kind] = record.boosters.get(kind, 0) + quantity
        record.updated_at = timestamp
        return record.boosters[kind]

    async def debit_boosters(
        self, fid: int, kind: str, quantity: int, timestamp: int
    ) -> dict[str, int]:
        record = self._records.get(fid)
        if record is None:
            raise PlayerNotRegistered(fid)
        available = record.boosters.get(kind, 0)
        if available < quantity:
            raise BalanceTooLow(kind, available, quantity)
        record.boosters[kind] = available - quantity
        record.updated_at = timestamp
        return dict(record.boosters)

    async def find_transaction(self, transaction_id: str) -> BoosterTransaction | None:
        entry = self._transactions.get(transaction_id)
        return replace(entry) if entry else None


def _copy(record: PlayerRecord) -> PlayerRecord:
    return replace(
        record,
        boosters=dict(record.boosters),
        booster_transactions=[replace(tx) for tx in record.booster_transactions],
    )
