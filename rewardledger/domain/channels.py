"""Reward channel definitions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping

from ..config import RewardConfig
from .cooldown import HOUR_MS
from .exceptions import ValidationError


class RewardChannel(str, Enum):
    SHARE = "share"
    FOLLOW = "follow"
    MINI_APP = "mini-app"

    @classmethod
    def parse(cls, value: "RewardChannel | str") -> "RewardChannel":
        try:
            return cls(value)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown reward channel '{value}'. Must be one of {[c.value for c in cls]}"
            ) from exc


@dataclass(frozen=True, slots=True)
class ChannelPolicy:
    """Grant size and eligibility rule of one channel.

    Timed channels carry ``cooldown_ms``; one-time channels are guarded by the
    record's ``has_followed`` flag instead.
    """

    channel: RewardChannel
    grant_size: int
    time_field: str
    cooldown_ms: int | None = None
    one_time: bool = False


DEFAULT_POLICIES: Mapping[RewardChannel, ChannelPolicy] = {
    RewardChannel.SHARE: ChannelPolicy(
        channel=RewardChannel.SHARE,
        grant_size=2,
        time_field="last_share_time",
        cooldown_ms=6 * HOUR_MS,
    ),
    RewardChannel.MINI_APP: ChannelPolicy(
        channel=RewardChannel.MINI_APP,
        grant_size=3,
        time_field="last_mini_app_time",
        cooldown_ms=3 * HOUR_MS,
    ),
    RewardChannel.FOLLOW: ChannelPolicy(
        channel=RewardChannel.FOLLOW,
        grant_size=1,
        time_field="last_follow_time",
        one_time=True,
    ),
}


def policies_from_config(config: RewardConfig) -> dict[RewardChannel, ChannelPolicy]:
    """Build channel policies, applying configured sizes and cooldowns."""
    return {
        RewardChannel.SHARE: replace(
            DEFAULT_POLICIES[RewardChannel.SHARE],
            grant_size=config.share_claims,
            cooldown_ms=int(config.share_cooldown_hours * HOUR_MS),
        ),
        RewardChannel.MINI_APP: replace(
            DEFAULT_POLICIES[RewardChannel.MINI_APP],
            grant_size=config.mini_app_claims,
            cooldown_ms=int(config.mini_app_cooldown_hours * HOUR_MS),
        ),
        RewardChannel.FOLLOW: replace(
            DEFAULT_POLICIES[RewardChannel.FOLLOW],
            grant_size=config.follow_claims,
        ),
    }
