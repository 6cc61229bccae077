"""Reward ledger public API."""

from .app import LedgerApp
from .config import LedgerConfig

__all__ = [
    "LedgerApp",
    "LedgerConfig",
]
