"""Input checks shared by the ledger services."""

from __future__ import annotations

import re

from .exceptions import ValidationError

_TX_ID = re.compile(r"^0x[0-9a-f]+$")


def require_fid(fid: int) -> int:
    if isinstance(fid, bool) or not isinstance(fid, int) or fid <= 0:
        raise ValidationError("fid must be a positive integer")
    return fid


def require_quantity(quantity: int, label: str = "Quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"{label} must be greater than 0")
    return quantity


def normalize_transaction_id(transaction_id: str) -> str:
    """Lower-case a 0x-prefixed hex transaction hash."""
    if not isinstance(transaction_id, str):
        raise ValidationError("transactionId must be a string")
    normalized = transaction_id.strip().lower()
    if not _TX_ID.match(normalized):
        raise ValidationError("transactionId must be a 0x-prefixed hex string")
    return normalized
