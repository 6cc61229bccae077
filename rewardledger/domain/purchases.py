"""On-chain booster purchases: idempotency, verification and credit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .boosters import BoosterCatalog, BoosterKind
from .events import BOOSTER_PURCHASED, EventBus
from .exceptions import DuplicateTransaction, PersistenceFailure, VerificationFailed
from .inputs import normalize_transaction_id, require_fid, require_quantity
from .inventory import InventoryLedger
from ..storage.base import BoosterTransaction, PlayerStore, StorageUnavailable

if TYPE_CHECKING:
    from ..chain.verifier import PurchaseVerifier, VerificationResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IdempotencyCheck:
    already_used: bool
    prior_usage: BoosterTransaction | None = None


class IdempotencyGuard:
    """Early rejection of transaction ids that were already consumed.

    This only short-circuits the expensive chain lookup. The unique
    transaction index written by ``InventoryLedger.credit`` is what actually
    prevents a second credit when two requests race.
    """

    def __init__(self, store: PlayerStore) -> None:
        self._store = store

    async def claim(self, transaction_id: str, fid: int) -> IdempotencyCheck:
        transaction_id = normalize_transaction_id(transaction_id)
        try:
            prior = await self._store.find_transaction(transaction_id)
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc
        if prior is None:
            return IdempotencyCheck(already_used=False)
        logger.info(
            "Transaction %s resubmitted by player %s; first used by %s at %s",
            transaction_id,
            fid,
            prior.fid,
            prior.timestamp,
        )
        return IdempotencyCheck(already_used=True, prior_usage=prior)


@dataclass(slots=True)
class PurchaseOutcome:
    fid: int
    kind: str
    quantity: int
    new_total: int
    transaction_id: str
    verification: "VerificationResult"


class PurchaseService:
    def __init__(
        self,
        store: PlayerStore,
        guard: IdempotencyGuard,
        verifier: "PurchaseVerifier",
        inventory: InventoryLedger,
        catalog: BoosterCatalog,
        event_bus: EventBus,
    ) -> None:
        self._store = store
        self._guard = guard
        self._verifier = verifier
        self._inventory = inventory
        self._catalog = catalog
        self._events = event_bus

    async def purchase(
        self,
        fid: int,
        kind: BoosterKind | int | str,
        quantity: int,
        transaction_id: str,
    ) -> PurchaseOutcome:
        require_fid(fid)
        require_quantity(quantity)
        spec = self._catalog.parse(kind)
        transaction_id = normalize_transaction_id(transaction_id)
        logger.info(
            "Processing purchase: player %s, %s x%s, tx %s", fid, spec.name, quantity, transaction_id
        )

        check = await self._guard.claim(transaction_id, fid)
        if check.already_used:
            raise DuplicateTransaction(transaction_id, check.prior_usage)

        verification = await self._verifier.verify(transaction_id, fid, spec.kind, quantity)
        if verification.reason is not None:
            raise VerificationFailed(verification.reason, verification.detail)

        try:
            await self._store.ensure(fid)
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc
        new_total = await self._inventory.credit(
            fid, spec.kind, quantity, transaction_id=transaction_id
        )

        outcome = PurchaseOutcome(
            fid=fid,
            kind=spec.name,
            quantity=quantity,
            new_total=new_total,
            transaction_id=transaction_id,
            verification=verification,
        )
        await self._events.publish(
            BOOSTER_PURCHASED,
            {
                "fid": fid,
                "kind": spec.name,
                "quantity": quantity,
                "new_total": new_total,
                "transaction_id": transaction_id,
            },
        )
        return outcome
