"""Booster kinds and their on-chain prices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Mapping

from .exceptions import ValidationError

# Payment token uses 18 decimals.
TOKEN_UNIT = 10**18


class BoosterKind(IntEnum):
    """Booster codes as encoded in the shop contract's ``buyBoosters`` call."""

    SHUFFLE = 0
    PARTY_POPPER = 1


@dataclass(frozen=True, slots=True)
class BoosterSpec:
    kind: BoosterKind
    name: str
    price_wei: int


DEFAULT_BOOSTERS: tuple[BoosterSpec, ...] = (
    BoosterSpec(BoosterKind.SHUFFLE, "shuffle", TOKEN_UNIT * 2 // 10),
    BoosterSpec(BoosterKind.PARTY_POPPER, "partyPopper", TOKEN_UNIT // 10),
)


class BoosterCatalog:
    """Single source of truth for booster names and prices."""

    def __init__(
        self,
        specs: Iterable[BoosterSpec] = DEFAULT_BOOSTERS,
        *,
        price_overrides: Mapping[str, int] | None = None,
    ) -> None:
        self._specs: dict[BoosterKind, BoosterSpec] = {}
        for spec in specs:
            if spec.kind in self._specs:
                raise ValueError(f"Booster {spec.kind.name} defined twice")
            self._specs[spec.kind] = spec
        missing = set(BoosterKind) - set(self._specs)
        if missing:
            raise ValueError(f"Boosters without a definition: {sorted(k.name for k in missing)}")
        for name, price in (price_overrides or {}).items():
            spec = self.by_name(name)
            self._specs[spec.kind] = BoosterSpec(spec.kind, spec.name, int(price))

    def get(self, kind: BoosterKind) -> BoosterSpec:
        return self._specs[kind]

    def by_name(self, name: str) -> BoosterSpec:
        for spec in self._specs.values():
            if spec.name == name:
                return spec
        raise ValidationError(f"Unknown booster '{name}'")

    def parse(self, value: BoosterKind | int | str) -> BoosterSpec:
        """Resolve an enum member, an on-chain code or a booster name."""
        if isinstance(value, BoosterKind):
            return self._specs[value]
        if isinstance(value, bool):
            raise ValidationError("Booster kind must be a code or a name")
        if isinstance(value, int):
            try:
                return self._specs[BoosterKind(value)]
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid booster type {value}. Must be one of {[k.value for k in BoosterKind]}"
                ) from exc
        if isinstance(value, str):
            if value.isdigit():
                return self.parse(int(value))
            return self.by_name(value)
        raise ValidationError("Booster kind must be a code or a name")

    def price(self, kind: BoosterKind, quantity: int) -> int:
        return self._specs[kind].price_wei * quantity

    def names(self) -> list[str]:
        return [spec.name for spec in self.all()]

    def all(self) -> list[BoosterSpec]:
        return [self._specs[kind] for kind in sorted(self._specs)]
