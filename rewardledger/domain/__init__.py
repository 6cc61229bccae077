"""Domain models and services."""

from .boosters import BoosterCatalog, BoosterKind, BoosterSpec
from .channels import ChannelPolicy, RewardChannel
from .claims import ClaimOutcome, apply_grant
from .cooldown import Eligibility, check_eligibility
from .inventory import InventoryLedger
from .player import PlayerProfile, PlayerService
from .purchases import IdempotencyCheck, IdempotencyGuard, PurchaseOutcome, PurchaseService
from .rewards import EligibilityView, GrantOutcome, RewardGrantService
from .exceptions import (
    AlreadyGranted,
    CooldownActive,
    DuplicateTransaction,
    InsufficientInventory,
    LedgerError,
    PersistenceFailure,
    PlayerNotFound,
    RewardDenied,
    ValidationError,
    VerificationFailed,
)

__all__ = [
    "BoosterCatalog",
    "BoosterKind",
    "BoosterSpec",
    "ChannelPolicy",
    "RewardChannel",
    "ClaimOutcome",
    "apply_grant",
    "Eligibility",
    "check_eligibility",
    "InventoryLedger",
    "PlayerProfile",
    "PlayerService",
    "IdempotencyCheck",
    "IdempotencyGuard",
    "PurchaseOutcome",
    "PurchaseService",
    "EligibilityView",
    "GrantOutcome",
    "RewardGrantService",
    "AlreadyGranted",
    "CooldownActive",
    "DuplicateTransaction",
    "InsufficientInventory",
    "LedgerError",
    "PersistenceFailure",
    "PlayerNotFound",
    "RewardDenied",
    "ValidationError",
    "VerificationFailed",
]
