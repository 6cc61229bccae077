"""Verify booster payments against the chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from .identity import WalletResolver
from .rpc import ChainClient, RpcRejected, RpcUnavailable, parse_quantity
from ..domain.boosters import BoosterCatalog, BoosterKind

logger = logging.getLogger(__name__)

# buyBoosters(uint256 fid, uint8 boosterType, uint256 quantity)
BUY_BOOSTERS_SELECTOR = "0x6b7bbf67"
# boosterPrices(uint8) view on the shop contract
BOOSTER_PRICES_SELECTOR = "0x6d8e25fc"
# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


class VerificationFailure(str, Enum):
    NOT_FOUND = "not_found"
    UNCONFIRMED = "unconfirmed"
    REVERTED = "reverted"
    WRONG_CONTRACT = "wrong_contract"
    PARAMETER_MISMATCH = "parameter_mismatch"
    WRONG_PAYER = "wrong_payer"
    INSUFFICIENT_AMOUNT = "insufficient_amount"
    RPC_UNAVAILABLE = "rpc_unavailable"

    @property
    def retryable(self) -> bool:
        return self is VerificationFailure.RPC_UNAVAILABLE


@dataclass(slots=True)
class VerificationResult:
    transaction_id: str
    reason: VerificationFailure | None = None
    block_number: int | None = None
    payer: str | None = None
    amount: int | None = None
    expected_amount: int | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def retryable(self) -> bool:
        return self.reason is not None and self.reason.retryable


@dataclass(frozen=True, slots=True)
class BuyBoostersCall:
    fid: int
    kind: int
    quantity: int


def encode_buy_boosters(fid: int, kind: int, quantity: int) -> str:
    return f"{BUY_BOOSTERS_SELECTOR}{fid:064x}{kind:064x}{quantity:064x}"


def decode_buy_boosters(input_data: str | None) -> BuyBoostersCall | None:
    data = (input_data or "").lower()
    if not data.startswith(BUY_BOOSTERS_SELECTOR):
        return None
    params = data[len(BUY_BOOSTERS_SELECTOR):]
    if len(params) < 192:
        return None
    try:
        fid, kind, quantity = (int(params[i:i + 64], 16) for i in (0, 64, 128))
    except ValueError:
        return None
    return BuyBoostersCall(fid=fid, kind=kind, quantity=quantity)


def transferred_amount(
    logs: Iterable[Mapping[str, Any]], *, token: str, payer: str, recipient: str
) -> int:
    """Sum ERC-20 ``Transfer`` amounts of ``token`` sent from ``payer`` to ``recipient``."""
    token, payer, recipient = token.lower(), payer.lower(), recipient.lower()
    total = 0
    for log in logs:
        if str(log.get("address", "")).lower() != token:
            continue
        topics = [str(topic).lower() for topic in log.get("topics") or []]
        if len(topics) < 3 or topics[0] != TRANSFER_TOPIC:
            continue
        if _topic_address(topics[1]) != payer or _topic_address(topics[2]) != recipient:
            continue
        try:
            total += int(log.get("data") or "0x0", 16)
        except ValueError:
            logger.debug("Skipping transfer log with malformed data: %r", log.get("data"))
    return total


def _topic_address(topic: str) -> str:
    return "0x" + topic[-40:]


class PurchaseVerifier:
    """Check that a transaction paid for the booster purchase a player claims.

    The chain is the only source of truth, so nothing is cached between calls.
    Lookup failures produce ``RPC_UNAVAILABLE``, which callers must treat as
    "unknown" rather than as a rejection.
    """

    def __init__(
        self,
        client: ChainClient,
        wallets: WalletResolver,
        catalog: BoosterCatalog,
        *,
        shop_address: str,
        payment_token_address: str,
        min_confirmations: int = 1,
    ) -> None:
        self._client = client
        self._wallets = wallets
        self._catalog = catalog
        self._shop = shop_address.lower()
        self._token = payment_token_address.lower()
        self._min_confirmations = max(1, min_confirmations)

    async def verify(
        self,
        transaction_id: str,
        fid: int,
        kind: BoosterKind | int | str,
        quantity: int,
    ) -> VerificationResult:
        spec = self._catalog.parse(kind)
        try:
            result = await self._verify(transaction_id, fid, spec.kind, quantity)
        except RpcRejected as exc:
            result = VerificationResult(
                transaction_id=transaction_id,
                reason=VerificationFailure.NOT_FOUND,
                detail=str(exc),
            )
        except RpcUnavailable as exc:
            result = VerificationResult(
                transaction_id=transaction_id,
                reason=VerificationFailure.RPC_UNAVAILABLE,
                detail=str(exc),
            )
        if result.ok:
            logger.info(
                "Verified tx %s for player %s at block %s", transaction_id, fid, result.block_number
            )
        else:
            logger.warning(
                "Verification of tx %s for player %s failed: %s %s",
                transaction_id,
                fid,
                result.reason.value if result.reason else "-",
                result.detail,
            )
        return result

    async def _verify(
        self, transaction_id: str, fid: int, kind: BoosterKind, quantity: int
    ) -> VerificationResult:
        def fail(reason: VerificationFailure, detail: str, **extra: Any) -> VerificationResult:
            return VerificationResult(
                transaction_id=transaction_id, reason=reason, detail=detail, **extra
            )

        tx = await self._client.get_transaction(transaction_id)
        if not tx:
            return fail(VerificationFailure.NOT_FOUND, "Transaction not found")

        receipt = await self._client.get_receipt(transaction_id)
        if not receipt or receipt.get("blockNumber") is None:
            return fail(VerificationFailure.UNCONFIRMED, "Transaction is pending")
        block_number = parse_quantity(receipt["blockNumber"], "receipt blockNumber")
        if receipt.get("status") != "0x1":
            return fail(
                VerificationFailure.REVERTED,
                "Transaction failed or was reverted",
                block_number=block_number,
            )
        head = await self._client.block_number()
        confirmations = head - block_number + 1
        if confirmations < self._min_confirmations:
            return fail(
                VerificationFailure.UNCONFIRMED,
                f"{confirmations} of {self._min_confirmations} confirmations",
                block_number=block_number,
            )

        if str(receipt.get("to") or "").lower() != self._shop:
            return fail(
                VerificationFailure.WRONG_CONTRACT,
                "Transaction is not to the booster shop",
                block_number=block_number,
            )

        call = decode_buy_boosters(tx.get("input"))
        expected = BuyBoostersCall(fid=fid, kind=int(kind), quantity=quantity)
        if call != expected:
            return fail(
                VerificationFailure.PARAMETER_MISMATCH,
                f"Expected {expected}, got {call}",
                block_number=block_number,
            )

        payer = str(tx.get("from") or "").lower()
        linked = await self._wallets.wallets_for(fid)
        if payer not in linked:
            return fail(
                VerificationFailure.WRONG_PAYER,
                "Payer is not linked to the player",
                block_number=block_number,
                payer=payer,
            )

        expected_amount = await self._expected_amount(kind, quantity)
        amount = transferred_amount(
            receipt.get("logs") or [], token=self._token, payer=payer, recipient=self._shop
        )
        if amount < expected_amount:
            return fail(
                VerificationFailure.INSUFFICIENT_AMOUNT,
                f"Transferred {amount}, expected {expected_amount}",
                block_number=block_number,
                payer=payer,
                amount=amount,
                expected_amount=expected_amount,
            )

        return VerificationResult(
            transaction_id=transaction_id,
            block_number=block_number,
            payer=payer,
            amount=amount,
            expected_amount=expected_amount,
        )

    async def _expected_amount(self, kind: BoosterKind, quantity: int) -> int:
        """Price the purchase from the shop contract, falling back to the catalog."""
        try:
            result = await self._client.call(self._shop, f"{BOOSTER_PRICES_SELECTOR}{int(kind):064x}")
            unit_price = int(result, 16)
        except (RpcUnavailable, RpcRejected, ValueError) as exc:
            logger.warning(
                "boosterPrices(%s) lookup failed (%s); using catalog price",
                int(kind),
                exc.__class__.__name__,
            )
            return self._catalog.price(kind, quantity)
        if unit_price <= 0:
            logger.warning("Shop reports no price for booster %s; using catalog price", int(kind))
            return self._catalog.price(kind, quantity)
        return unit_price * quantity
