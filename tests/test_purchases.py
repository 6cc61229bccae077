import asyncio

import pytest

from rewardledger.chain.verifier import VerificationFailure
from rewardledger.domain.boosters import TOKEN_UNIT, BoosterKind
from rewardledger.domain.events import BOOSTER_PURCHASED
from rewardledger.domain.exceptions import DuplicateTransaction, ValidationError, VerificationFailed
from rewardledger.storage.base import TransactionAlreadyRecorded
from rewardledger.testing import PlayerFactory, app_fixture

SHUFFLE_PRICE = 2 * TOKEN_UNIT // 10


@pytest.fixture()
def app():
    return app_fixture()


@pytest.fixture()
def player(app):
    player = PlayerFactory().build()
    app.wallet_resolver.link(player.fid, player.wallet)
    return player


def _buy(app, player, quantity=3, **kwargs):
    kwargs.setdefault("amount", SHUFFLE_PRICE * quantity)
    return app.chain_client.add_purchase(
        player.fid, BoosterKind.SHUFFLE, quantity, payer=player.wallet, **kwargs
    )


@pytest.mark.asyncio()
async def test_verified_purchase_credits_boosters(app, player):
    tx = _buy(app, player, tx_hash="0xabc")
    outcome = await app.purchases.purchase(player.fid, "shuffle", 3, "0xabc")

    assert outcome.new_total == 3
    assert outcome.kind == "shuffle"
    assert outcome.verification.amount == 3 * SHUFFLE_PRICE
    record = await app.player_store.get(player.fid)
    assert record.boosters["shuffle"] == 3
    assert record.booster_transactions[0].transaction_id == tx


@pytest.mark.asyncio()
async def test_replayed_transaction_is_rejected_without_chain_lookup(app, player):
    _buy(app, player, tx_hash="0xabc")
    await app.purchases.purchase(player.fid, 0, 3, "0xabc")
    lookups = len(app.chain_client.calls)

    with pytest.raises(DuplicateTransaction) as excinfo:
        await app.purchases.purchase(player.fid, 0, 3, "0xABC")
    assert excinfo.value.prior.fid == player.fid
    assert len(app.chain_client.calls) == lookups
    assert (await app.player_store.get(player.fid)).boosters["shuffle"] == 3


@pytest.mark.asyncio()
async def test_concurrent_submissions_credit_once(app, player):
    tx = _buy(app, player, quantity=2)
    results = await asyncio.gather(
        *(app.purchases.purchase(player.fid, "shuffle", 2, tx) for _ in range(4)),
        return_exceptions=True,
    )
    credited = [r for r in results if not isinstance(r, BaseException)]
    assert len(credited) == 1
    assert all(isinstance(r, DuplicateTransaction) for r in results if r not in credited)
    assert (await app.player_store.get(player.fid)).boosters["shuffle"] == 2


@pytest.mark.asyncio()
async def test_purchase_publishes_event(app, player):
    received = []

    async def listener(payload):
        received.append(payload)

    app.event_bus.subscribe(BOOSTER_PURCHASED, listener)
    tx = _buy(app, player, quantity=1)
    await app.purchases.purchase(player.fid, "shuffle", 1, tx)
    assert received[0]["new_total"] == 1
    assert received[0]["transaction_id"] == tx


@pytest.mark.asyncio()
async def test_overpayment_is_accepted(app, player):
    tx = _buy(app, player, quantity=1, amount=SHUFFLE_PRICE + 1)
    outcome = await app.purchases.purchase(player.fid, "shuffle", 1, tx)
    assert outcome.new_total == 1


async def _rejection(app, player, tx, quantity=3, kind="shuffle"):
    with pytest.raises(VerificationFailed) as excinfo:
        await app.purchases.purchase(player.fid, kind, quantity, tx)
    assert await app.player_store.find_transaction(tx.lower()) is None
    return excinfo.value


@pytest.mark.asyncio()
async def test_unknown_transaction(app, player):
    error = await _rejection(app, player, "0xdead")
    assert error.reason is VerificationFailure.NOT_FOUND
    assert not error.retryable


@pytest.mark.asyncio()
async def test_pending_transaction(app, player):
    error = await _rejection(app, player, _buy(app, player, pending=True))
    assert error.reason is VerificationFailure.UNCONFIRMED


@pytest.mark.asyncio()
async def test_too_few_confirmations():
    from rewardledger.config import ChainConfig, LedgerConfig

    app = app_fixture(LedgerConfig(chain=ChainConfig(min_confirmations=3)))
    player = PlayerFactory().build()
    app.wallet_resolver.link(player.fid, player.wallet)
    tx = _buy(app, player, block=app.chain_client.head - 1)
    error = await _rejection(app, player, tx)
    assert error.reason is VerificationFailure.UNCONFIRMED

    app.chain_client.head += 1
    outcome = await app.purchases.purchase(player.fid, "shuffle", 3, tx)
    assert outcome.verification.block_number == app.chain_client.head - 2


@pytest.mark.asyncio()
async def test_reverted_transaction(app, player):
    error = await _rejection(app, player, _buy(app, player, status="0x0"))
    assert error.reason is VerificationFailure.REVERTED


@pytest.mark.asyncio()
async def test_transaction_to_other_contract(app, player):
    other = "0x" + "11" * 20
    error = await _rejection(app, player, _buy(app, player, to=other))
    assert error.reason is VerificationFailure.WRONG_CONTRACT


@pytest.mark.asyncio()
async def test_claimed_quantity_differs_from_call(app, player):
    tx = _buy(app, player, quantity=1)
    error = await _rejection(app, player, tx, quantity=3)
    assert error.reason is VerificationFailure.PARAMETER_MISMATCH


@pytest.mark.asyncio()
async def test_claimed_kind_differs_from_call(app, player):
    tx = _buy(app, player, quantity=3, amount=10 * TOKEN_UNIT)
    error = await _rejection(app, player, tx, kind="partyPopper")
    assert error.reason is VerificationFailure.PARAMETER_MISMATCH


@pytest.mark.asyncio()
async def test_payment_for_another_player(app, player):
    other = PlayerFactory().build()
    tx = app.chain_client.add_purchase(
        other.fid, BoosterKind.SHUFFLE, 3, payer=player.wallet, amount=3 * SHUFFLE_PRICE
    )
    error = await _rejection(app, player, tx)
    assert error.reason is VerificationFailure.PARAMETER_MISMATCH


@pytest.mark.asyncio()
async def test_payer_not_linked_to_player(app, player):
    stranger = PlayerFactory().wallet()
    tx = app.chain_client.add_purchase(
        player.fid, BoosterKind.SHUFFLE, 3, payer=stranger, amount=3 * SHUFFLE_PRICE
    )
    error = await _rejection(app, player, tx)
    assert error.reason is VerificationFailure.WRONG_PAYER


@pytest.mark.asyncio()
async def test_underpayment(app, player):
    error = await _rejection(app, player, _buy(app, player, amount=3 * SHUFFLE_PRICE - 1))
    assert error.reason is VerificationFailure.INSUFFICIENT_AMOUNT


@pytest.mark.asyncio()
async def test_rpc_outage_is_retryable_and_does_not_consume_transaction(app, player):
    tx = _buy(app, player)
    app.chain_client.unavailable = True
    error = await _rejection(app, player, tx)
    assert error.reason is VerificationFailure.RPC_UNAVAILABLE
    assert error.retryable

    app.chain_client.unavailable = False
    outcome = await app.purchases.purchase(player.fid, "shuffle", 3, tx)
    assert outcome.new_total == 3


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "fid, kind, quantity, tx",
    [
        (0, "shuffle", 1, "0xabc"),
        (1, "rocket", 1, "0xabc"),
        (1, "shuffle", 0, "0xabc"),
        (1, "shuffle", 1, "abc"),
        (1, "shuffle", 1, "0xnothex"),
    ],
)
async def test_malformed_purchase_rejected_before_lookup(app, fid, kind, quantity, tx):
    with pytest.raises(ValidationError):
        await app.purchases.purchase(fid, kind, quantity, tx)
    assert app.chain_client.calls == []


@pytest.mark.asyncio()
async def test_racing_submissions_past_the_guard_credit_once(app, player):
    tx = _buy(app, player, quantity=2)
    app.chain_client.hold_receipts(2)

    results = await asyncio.gather(
        app.purchases.purchase(player.fid, "shuffle", 2, tx),
        app.purchases.purchase(player.fid, "shuffle", 2, tx),
        return_exceptions=True,
    )
    receipts = [call for call in app.chain_client.calls if call[0] == "eth_getTransactionReceipt"]
    assert len(receipts) == 2
    duplicates = [r for r in results if isinstance(r, DuplicateTransaction)]
    assert len(duplicates) == 1
    assert isinstance(duplicates[0].__cause__, TransactionAlreadyRecorded)
    assert len([r for r in results if not isinstance(r, BaseException)]) == 1
    assert (await app.player_store.get(player.fid)).boosters["shuffle"] == 2


@pytest.mark.asyncio()
async def test_shop_contract_price_takes_precedence(app, player):
    app.chain_client.prices[BoosterKind.SHUFFLE] = 2 * SHUFFLE_PRICE
    tx = _buy(app, player, quantity=3)

    result = await app.verifier.verify(tx, player.fid, "shuffle", 3)
    assert result.reason is VerificationFailure.INSUFFICIENT_AMOUNT
    assert result.expected_amount == 6 * SHUFFLE_PRICE


@pytest.mark.asyncio()
async def test_lowered_contract_price_is_accepted(app, player):
    app.chain_client.prices[BoosterKind.SHUFFLE] = 1
    tx = _buy(app, player, quantity=3, amount=3)

    outcome = await app.purchases.purchase(player.fid, "shuffle", 3, tx)
    assert outcome.verification.expected_amount == 3
    assert outcome.new_total == 3


@pytest.mark.asyncio()
async def test_catalog_price_used_when_contract_lookup_fails(app, player):
    tx = _buy(app, player, quantity=3)

    result = await app.verifier.verify(tx, player.fid, "shuffle", 3)
    assert result.ok
    assert result.expected_amount == 3 * SHUFFLE_PRICE
    assert any(method == "eth_call" for method, _ in app.chain_client.calls)


@pytest.mark.asyncio()
async def test_malformed_receipt_block_is_retryable(app, player):
    tx = _buy(app, player)
    app.chain_client.receipts[tx]["blockNumber"] = "0xzz"
    error = await _rejection(app, player, tx)
    assert error.reason is VerificationFailure.RPC_UNAVAILABLE
    assert error.retryable
