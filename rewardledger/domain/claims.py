"""Gift-box claim budget shared by all reward channels."""

from __future__ import annotations

from dataclasses import dataclass

from .cooldown import HOUR_MS

DEFAULT_WINDOW_MS = 12 * HOUR_MS
DEFAULT_CLAIM_CAP = 5


@dataclass(frozen=True, slots=True)
class ClaimOutcome:
    claims_in_period: int
    remaining: int
    last_update: int
    window_reset: bool


def apply_grant(
    claims_in_period: int,
    last_update: int | None,
    grant_size: int,
    now: int,
    *,
    window: int = DEFAULT_WINDOW_MS,
    cap: int = DEFAULT_CLAIM_CAP,
) -> ClaimOutcome:
    """Add ``grant_size`` claims to a sliding window anchored at the latest grant.

    A grant arriving ``window`` or more after ``last_update`` starts a new
    window. The anchor moves to ``now`` on every grant, so steady grants keep
    one window open. ``remaining`` is reported against ``cap`` but never
    enforced.
    """
    if grant_size <= 0:
        raise ValueError("Grant size must be positive")
    window_reset = last_update is None or now - last_update >= window
    if window_reset:
        count = grant_size
    else:
        count = claims_in_period + grant_size
    return ClaimOutcome(
        claims_in_period=count,
        remaining=max(0, cap - count),
        last_update=now,
        window_reset=window_reset,
    )
