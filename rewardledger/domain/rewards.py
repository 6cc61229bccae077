"""Bonus-action grants: cooldown gate, claim budget and persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .channels import ChannelPolicy, RewardChannel
from .claims import DEFAULT_CLAIM_CAP, DEFAULT_WINDOW_MS, apply_grant
from .cooldown import check_eligibility, now_ms
from .events import REWARD_GRANTED, EventBus
from .exceptions import AlreadyGranted, CooldownActive, PersistenceFailure
from .inputs import require_fid
from ..storage.base import PlayerRecord, PlayerStore, StorageUnavailable

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


@dataclass(slots=True)
class GrantOutcome:
    channel: RewardChannel
    granted: bool
    claims_in_period: int
    remaining_claims: int
    next_eligible_time: int | None


@dataclass(slots=True)
class EligibilityView:
    channel: RewardChannel
    can_claim: bool
    time_until_next: int
    last_grant_time: int | None
    next_eligible_time: int | None


class RewardGrantService:
    """Grant one channel's reward, retrying on concurrent writes to the record.

    The eligibility decision and the ledger update are written with a
    compare-and-set on the record version, so two racing requests can never
    both be granted from the same observed state.
    """

    def __init__(
        self,
        policy: ChannelPolicy,
        store: PlayerStore,
        event_bus: EventBus,
        *,
        window_ms: int = DEFAULT_WINDOW_MS,
        claim_cap: int = DEFAULT_CLAIM_CAP,
        max_attempts: int = 5,
        clock: Clock = now_ms,
    ) -> None:
        self.policy = policy
        self._store = store
        self._events = event_bus
        self._window_ms = window_ms
        self._claim_cap = claim_cap
        self._max_attempts = max_attempts
        self._clock = clock

    @property
    def channel(self) -> RewardChannel:
        return self.policy.channel

    async def check(self, fid: int) -> EligibilityView:
        require_fid(fid)
        try:
            record = await self._store.get(fid)
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc
        return self._evaluate(record, self._clock())

    async def grant(self, fid: int) -> GrantOutcome:
        require_fid(fid)
        outcome: GrantOutcome | None = None
        try:
            for attempt in range(1, self._max_attempts + 1):
                outcome = await self._attempt(fid)
                if outcome is not None:
                    break
                logger.debug(
                    "Concurrent update on player %s (%s), retrying %s/%s",
                    fid,
                    self.channel.value,
                    attempt,
                    self._max_attempts,
                )
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc

        if outcome is None:
            logger.warning("Gave up granting %s to player %s after conflicts", self.channel.value, fid)
            raise PersistenceFailure("Too many concurrent updates")

        logger.info(
            "Granted %s reward to player %s: %s claims in period, %s remaining",
            self.channel.value,
            fid,
            outcome.claims_in_period,
            outcome.remaining_claims,
        )
        await self._events.publish(
            REWARD_GRANTED,
            {
                "fid": fid,
                "channel": self.channel.value,
                "claims_in_period": outcome.claims_in_period,
                "remaining_claims": outcome.remaining_claims,
            },
        )
        return outcome

    async def _attempt(self, fid: int) -> GrantOutcome | None:
        record = await self._store.ensure(fid)
        now = self._clock()
        view = self._evaluate(record, now)
        if not view.can_claim:
            if self.policy.one_time:
                raise AlreadyGranted(f"Player {fid} already received the {self.channel.value} reward")
            raise CooldownActive(view.time_until_next, view.last_grant_time)

        claims = apply_grant(
            record.gift_box_claims_in_period,
            record.last_gift_box_update,
            self.policy.grant_size,
            now,
            window=self._window_ms,
            cap=self._claim_cap,
        )
        last = getattr(record, self.policy.time_field)
        fields: dict[str, Any] = {
            self.policy.time_field: now if last is None else max(last, now),
            "gift_box_claims_in_period": claims.claims_in_period,
            "last_gift_box_update": claims.last_update,
        }
        if self.policy.one_time:
            fields["has_followed"] = True

        if not await self._store.compare_and_set(fid, record.version, fields, timestamp=now):
            return None
        return GrantOutcome(
            channel=self.channel,
            granted=True,
            claims_in_period=claims.claims_in_period,
            remaining_claims=claims.remaining,
            next_eligible_time=(
                now + self.policy.cooldown_ms if self.policy.cooldown_ms is not None else None
            ),
        )

    def _evaluate(self, record: PlayerRecord | None, now: int) -> EligibilityView:
        last = getattr(record, self.policy.time_field) if record else None
        if self.policy.one_time:
            granted = bool(record and record.has_followed)
            return EligibilityView(
                channel=self.channel,
                can_claim=not granted,
                time_until_next=0,
                last_grant_time=last,
                next_eligible_time=None,
            )

        cooldown = self.policy.cooldown_ms or 0
        eligibility = check_eligibility(last, now, cooldown)
        return EligibilityView(
            channel=self.channel,
            can_claim=eligibility.eligible,
            time_until_next=eligibility.remaining,
            last_grant_time=last,
            next_eligible_time=last + cooldown if last is not None else None,
        )
