"""Exceptions raised by the ledger services."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..chain.verifier import VerificationFailure
    from ..storage.base import BoosterTransaction


class LedgerError(RuntimeError):
    """Base class for domain exceptions."""

    retryable = False


class ValidationError(LedgerError):
    """Missing or malformed input."""


class RewardDenied(LedgerError):
    """Expected negative outcome of a grant request."""


class CooldownActive(RewardDenied):
    """Raised when a channel is claimed again before its cooldown expires."""

    def __init__(self, remaining_ms: int, last_grant_time: int | None = None) -> None:
        super().__init__(f"Cooldown active for {remaining_ms // 1000} seconds")
        self.remaining_ms = remaining_ms
        self.last_grant_time = last_grant_time


class AlreadyGranted(RewardDenied):
    """Raised when a one-time channel was already granted."""


class PlayerNotFound(LedgerError):
    def __init__(self, fid: int) -> None:
        super().__init__(f"Player {fid} not found")
        self.fid = fid


class DuplicateTransaction(LedgerError):
    """Raised when a payment transaction was already consumed."""

    def __init__(self, transaction_id: str, prior: "BoosterTransaction | None" = None) -> None:
        super().__init__(f"Transaction {transaction_id} already used")
        self.transaction_id = transaction_id
        self.prior = prior


class VerificationFailed(LedgerError):
    def __init__(self, reason: "VerificationFailure", detail: str = "") -> None:
        super().__init__(f"Verification failed: {reason.value}")
        self.reason = reason
        self.detail = detail

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.reason.retryable


class InsufficientInventory(LedgerError):
    def __init__(self, kind: str, available: int, requested: int) -> None:
        super().__init__(f"Insufficient {kind} boosters. Available: {available}, Requested: {requested}")
        self.kind = kind
        self.available = available
        self.requested = requested


class PersistenceFailure(LedgerError):
    """Raised when the player store cannot complete a write."""

    retryable = True
