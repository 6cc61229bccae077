"""Resolve a player's platform id to the wallets linked to it."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Protocol

import httpx

from .rpc import RpcUnavailable

logger = logging.getLogger(__name__)


class WalletResolver(Protocol):
    async def wallets_for(self, fid: int) -> frozenset[str]: ...


class StaticWalletResolver:
    """Wallet links supplied up front (configuration or tests)."""

    def __init__(self, wallets: Mapping[int, Iterable[str]] | None = None) -> None:
        self._wallets: dict[int, frozenset[str]] = {}
        for fid, addresses in (wallets or {}).items():
            self.link(fid, *addresses)

    def link(self, fid: int, *addresses: str) -> None:
        current = self._wallets.get(fid, frozenset())
        self._wallets[fid] = current | {address.lower() for address in addresses}

    async def wallets_for(self, fid: int) -> frozenset[str]:
        return self._wallets.get(fid, frozenset())


class NeynarWalletResolver:
    """Look up custody and verified addresses through the Neynar user API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            headers={"accept": "application/json", "x-api-key": api_key},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def wallets_for(self, fid: int) -> frozenset[str]:
        try:
            resp = await self._client.get(self._api_url, params={"fids": str(fid)})
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Identity lookup for %s failed: %s", fid, exc.__class__.__name__)
            raise RpcUnavailable("identity lookup failed") from exc

        if not isinstance(data, dict):
            raise RpcUnavailable("identity lookup returned a malformed response")
        users = data.get("users") or []
        addresses: set[str] = set()
        for user in users:
            if user.get("fid") != fid:
                continue
            if user.get("custody_address"):
                addresses.add(user["custody_address"].lower())
            verified = user.get("verified_addresses") or {}
            addresses.update(address.lower() for address in verified.get("eth_addresses", []))
        return frozenset(addresses)
