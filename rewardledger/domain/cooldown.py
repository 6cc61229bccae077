"""Cooldown arithmetic for timed reward channels."""

from __future__ import annotations

import time
from dataclasses import dataclass

HOUR_MS = 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class Eligibility:
    eligible: bool
    remaining: int


def check_eligibility(last_grant_time: int | None, now: int, cooldown: int) -> Eligibility:
    """Decide whether a channel can be granted at ``now``.

    All arguments are milliseconds. A channel that was never granted is always
    eligible; otherwise it becomes eligible once ``cooldown`` has fully elapsed.
    """
    if last_grant_time is None:
        return Eligibility(eligible=True, remaining=0)
    elapsed = now - last_grant_time
    return Eligibility(eligible=elapsed >= cooldown, remaining=max(0, cooldown - elapsed))
