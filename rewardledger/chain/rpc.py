"""Async EVM JSON-RPC client used to read payment transactions."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


class RpcUnavailable(RuntimeError):
    """An external lookup failed in a way that says nothing about the transaction."""


class RpcRejected(RuntimeError):
    """The node refused the request itself, so repeating it cannot succeed."""

    def __init__(self, method: str, code: int, message: str) -> None:
        super().__init__(f"{method} rejected ({code}): {message}")
        self.code = code


# JSON-RPC "invalid request" and "invalid params".
REJECTED_CODES = frozenset({-32600, -32602})


class ChainClient(Protocol):
    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]: ...
    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]: ...
    async def block_number(self) -> int: ...
    async def call(self, to: str, data: str) -> str: ...


class JsonRpcClient:
    """Thin ``eth_*`` client with bounded timeouts and retries."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_s: float = 10.0,
        retries: int = 2,
        backoff_s: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._client = httpx.AsyncClient(timeout=timeout_s, transport=transport)
        self._retries = retries
        self._backoff_s = backoff_s
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self._call("eth_getTransactionByHash", [tx_hash])

    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self._call("eth_getTransactionReceipt", [tx_hash])

    async def block_number(self) -> int:
        result = await self._call("eth_blockNumber", [])
        return parse_quantity(result, "eth_blockNumber")

    async def call(self, to: str, data: str) -> str:
        """Run a read-only contract call against the latest block."""
        result = await self._call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise RpcUnavailable("eth_call returned no result")
        return result

    async def _call(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await self._client.post(self.rpc_url, json=payload)
                resp.raise_for_status()
                data = resp.json()
            except (httpx.HTTPError, ValueError) as exc:
                if attempt > self._retries:
                    logger.warning(
                        "RPC call '%s' failed after %s attempts: %s",
                        method,
                        attempt,
                        exc.__class__.__name__,
                    )
                    raise RpcUnavailable(f"{method} failed: {exc.__class__.__name__}") from exc
                delay = self._backoff_s * attempt
                logger.info(
                    "RPC call '%s' failed (%s); retrying in %.1f s (attempt %s/%s).",
                    method,
                    exc.__class__.__name__,
                    delay,
                    attempt,
                    self._retries + 1,
                )
                await asyncio.sleep(delay)
                continue
            if not isinstance(data, dict):
                raise RpcUnavailable(f"{method} returned a malformed response")
            if "error" in data:
                error = data["error"] if isinstance(data["error"], dict) else {}
                logger.warning("RPC call '%s' returned error: %s", method, data["error"])
                if error.get("code") in REJECTED_CODES:
                    raise RpcRejected(method, error["code"], str(error.get("message", "")))
                raise RpcUnavailable(f"RPC error: {data['error']}")
            return data.get("result")


def parse_quantity(value: Any, label: str) -> int:
    """Decode a hex-encoded JSON-RPC quantity, treating garbage as an outage."""
    if not isinstance(value, str):
        raise RpcUnavailable(f"{label} returned no quantity")
    try:
        return int(value, 16)
    except ValueError as exc:
        raise RpcUnavailable(f"{label} returned a malformed quantity {value!r}") from exc
