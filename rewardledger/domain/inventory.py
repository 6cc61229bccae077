"""Booster inventory: atomic credit and debit of consumable counters."""

from __future__ import annotations

import logging
from typing import Callable

from .boosters import BoosterCatalog, BoosterKind
from .cooldown import now_ms
from .exceptions import (
    DuplicateTransaction,
    InsufficientInventory,
    PersistenceFailure,
    PlayerNotFound,
)
from .inputs import normalize_transaction_id, require_fid, require_quantity
from ..storage.base import (
    BalanceTooLow,
    PlayerNotRegistered,
    PlayerStore,
    StorageUnavailable,
    TransactionAlreadyRecorded,
)

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Adjust booster counters through single conditional store operations."""

    def __init__(
        self,
        store: PlayerStore,
        catalog: BoosterCatalog,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._clock = clock

    async def credit(
        self,
        fid: int,
        kind: BoosterKind | int | str,
        quantity: int,
        *,
        transaction_id: str,
    ) -> int:
        """Record ``transaction_id`` and add ``quantity`` boosters; return the new total."""
        require_fid(fid)
        require_quantity(quantity)
        spec = self._catalog.parse(kind)
        transaction_id = normalize_transaction_id(transaction_id)
        try:
            total = await self._store.credit_boosters(
                fid, spec.name, quantity, transaction_id, self._clock()
            )
        except TransactionAlreadyRecorded as exc:
            raise DuplicateTransaction(transaction_id, exc.prior) from exc
        except PlayerNotRegistered as exc:
            raise PlayerNotFound(fid) from exc
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc
        logger.info(
            "Credited %s %s to player %s (tx %s), total %s",
            quantity,
            spec.name,
            fid,
            transaction_id,
            total,
        )
        return total

    async def debit(
        self, fid: int, kind: BoosterKind | int | str, quantity: int
    ) -> dict[str, int]:
        """Consume boosters, failing without side effects when too few are held."""
        require_fid(fid)
        require_quantity(quantity, "Used quantity")
        spec = self._catalog.parse(kind)
        try:
            balances = await self._store.debit_boosters(fid, spec.name, quantity, self._clock())
        except BalanceTooLow as exc:  # convert to domain-specific error
            raise InsufficientInventory(spec.name, exc.available, exc.requested) from exc
        except PlayerNotRegistered as exc:
            raise PlayerNotFound(fid) from exc
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc
        logger.info("Player %s used %s %s", fid, quantity, spec.name)
        return self.with_all_kinds(balances)

    def with_all_kinds(self, balances: dict[str, int]) -> dict[str, int]:
        """Zero-fill counters for kinds the player never held."""
        return {name: int(balances.get(name, 0)) for name in self._catalog.names()}
