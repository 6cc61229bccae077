"""Player-centric read views and booster consumption."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from .boosters import BoosterCatalog, BoosterKind
from .events import BOOSTER_USED, EventBus
from .exceptions import PersistenceFailure, PlayerNotFound
from .inputs import require_fid
from .inventory import InventoryLedger
from ..storage.base import BoosterTransaction, PlayerRecord, PlayerStore, StorageUnavailable


@dataclass(slots=True)
class PlayerProfile:
    fid: int
    gift_box_claims_in_period: int
    last_gift_box_update: int | None
    has_followed: bool
    boosters: Mapping[str, int]
    booster_transactions: Sequence[BoosterTransaction]


class PlayerService:
    """Expose player state and booster usage."""

    def __init__(
        self,
        store: PlayerStore,
        inventory: InventoryLedger,
        catalog: BoosterCatalog,
        event_bus: EventBus,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._inventory = inventory
        self._events = event_bus

    async def fetch(self, fid: int) -> PlayerProfile:
        require_fid(fid)
        try:
            record = await self._store.get(fid)
        except StorageUnavailable as exc:
            raise PersistenceFailure("Player store unavailable") from exc
        if record is None:
            raise PlayerNotFound(fid)
        return self._to_profile(record)

    async def use_booster(
        self, fid: int, kind: BoosterKind | int | str, quantity: int
    ) -> dict[str, int]:
        spec = self._catalog.parse(kind)
        balances = await self._inventory.debit(fid, spec.kind, quantity)
        await self._events.publish(
            BOOSTER_USED,
            {"fid": fid, "kind": spec.name, "quantity": quantity, "boosters": balances},
        )
        return balances

    def _to_profile(self, record: PlayerRecord) -> PlayerProfile:
        return PlayerProfile(
            fid=record.fid,
            gift_box_claims_in_period=record.gift_box_claims_in_period,
            last_gift_box_update=record.last_gift_box_update,
            has_followed=record.has_followed,
            boosters=self._inventory.with_all_kinds(record.boosters),
            booster_transactions=list(record.booster_transactions),
        )
