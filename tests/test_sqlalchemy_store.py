import asyncio

import pytest
import pytest_asyncio

from rewardledger.config import LedgerConfig, StorageConfig
from rewardledger.domain.boosters import TOKEN_UNIT, BoosterKind
from rewardledger.domain.exceptions import DuplicateTransaction, InsufficientInventory
from rewardledger.domain.purchases import PurchaseOutcome
from rewardledger.storage.base import (
    BalanceTooLow,
    PlayerNotRegistered,
    TransactionAlreadyRecorded,
)
from rewardledger.storage.sqlalchemy import AsyncSQLAlchemyStorage
from rewardledger.testing import ManualClock, PlayerFactory, app_fixture


@pytest_asyncio.fixture()
async def storage(tmp_path):
    storage = AsyncSQLAlchemyStorage(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await storage.init_models()
    yield storage
    await storage.dispose()


@pytest.fixture()
def store(storage):
    return storage.player_store()


@pytest.mark.asyncio()
async def test_ensure_creates_record_once(store):
    assert await store.get(1) is None
    created = await store.ensure(1)
    assert created.version == 0
    assert created.gift_box_claims_in_period == 0
    again = await store.ensure(1)
    assert again == created


@pytest.mark.asyncio()
async def test_compare_and_set_checks_version(store):
    record = await store.ensure(1)
    fields = {"last_share_time": 10, "gift_box_claims_in_period": 2, "last_gift_box_update": 10}
    assert await store.compare_and_set(1, record.version, fields, timestamp=10)
    assert not await store.compare_and_set(1, record.version, fields, timestamp=11)

    updated = await store.get(1)
    assert updated.version == record.version + 1
    assert updated.last_share_time == 10
    assert updated.updated_at == 10


@pytest.mark.asyncio()
async def test_compare_and_set_refuses_booster_fields(store):
    record = await store.ensure(1)
    with pytest.raises(ValueError):
        await store.compare_and_set(1, record.version, {"boosters": {}}, timestamp=1)


@pytest.mark.asyncio()
async def test_credit_and_debit(store):
    await store.ensure(1)
    assert await store.credit_boosters(1, "shuffle", 3, "0xa1", 100) == 3
    assert await store.credit_boosters(1, "shuffle", 2, "0xa2", 200) == 5
    assert await store.debit_boosters(1, "shuffle", 4, 300) == {"shuffle": 1}

    with pytest.raises(BalanceTooLow) as excinfo:
        await store.debit_boosters(1, "shuffle", 2, 400)
    assert excinfo.value.available == 1

    record = await store.get(1)
    assert record.boosters == {"shuffle": 1}
    assert [tx.transaction_id for tx in record.booster_transactions] == ["0xa1", "0xa2"]
    assert record.updated_at == 300


@pytest.mark.asyncio()
async def test_transaction_id_is_unique_across_players(store):
    await store.ensure(1)
    await store.ensure(2)
    await store.credit_boosters(1, "shuffle", 3, "0xa1", 100)
    with pytest.raises(TransactionAlreadyRecorded) as excinfo:
        await store.credit_boosters(2, "partyPopper", 1, "0xa1", 200)
    assert excinfo.value.prior.fid == 1
    assert (await store.get(2)).boosters == {}
    assert (await store.find_transaction("0xa1")).quantity == 3


@pytest.mark.asyncio()
async def test_unknown_player_operations(store):
    with pytest.raises(PlayerNotRegistered):
        await store.credit_boosters(9, "shuffle", 1, "0xb1", 1)
    with pytest.raises(PlayerNotRegistered):
        await store.debit_boosters(9, "shuffle", 1, 1)
    assert await store.find_transaction("0xb1") is None


@pytest.mark.asyncio()
async def test_ledger_services_on_database(tmp_path):
    config = LedgerConfig(
        storage=StorageConfig(
            backend="sqlalchemy", dsn=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}"
        )
    )
    clock = ManualClock(start=0)
    app = app_fixture(config, player_store=None, clock=clock)
    await app.init_backend()
    try:
        outcome = await app.reward_service("share").grant(3)
        assert outcome.remaining_claims == 3

        await app.player_store.ensure(3)
        await app.inventory.credit(3, "shuffle", 1, transaction_id="0xc1")
        with pytest.raises(DuplicateTransaction):
            await app.inventory.credit(3, "shuffle", 1, transaction_id="0xc1")
        with pytest.raises(InsufficientInventory):
            await app.player_service.use_booster(3, "shuffle", 2)

        profile = await app.player_service.fetch(3)
        assert profile.boosters == {"shuffle": 1, "partyPopper": 0}
        assert profile.gift_box_claims_in_period == 2
    finally:
        await app.aclose()


@pytest.mark.asyncio()
async def test_racing_purchases_credit_once_on_database(tmp_path):
    config = LedgerConfig(
        storage=StorageConfig(
            backend="sqlalchemy", dsn=f"sqlite+aiosqlite:///{tmp_path / 'race.db'}"
        )
    )
    app = app_fixture(config, player_store=None)
    await app.init_backend()
    try:
        player = PlayerFactory().build()
        app.wallet_resolver.link(player.fid, player.wallet)
        await app.player_store.ensure(player.fid)
        tx = app.chain_client.add_purchase(
            player.fid, BoosterKind.SHUFFLE, 2, payer=player.wallet, amount=4 * TOKEN_UNIT // 10
        )
        app.chain_client.hold_receipts(2)

        results = await asyncio.gather(
            app.purchases.purchase(player.fid, "shuffle", 2, tx),
            app.purchases.purchase(player.fid, "shuffle", 2, tx),
            return_exceptions=True,
        )
        outcomes = [r for r in results if isinstance(r, PurchaseOutcome)]
        duplicates = [r for r in results if isinstance(r, DuplicateTransaction)]
        assert len(outcomes) == 1
        assert len(duplicates) == 1
        assert isinstance(duplicates[0].__cause__, TransactionAlreadyRecorded)

        record = await app.player_store.get(player.fid)
        assert record.boosters == {"shuffle": 2}
        assert len(record.booster_transactions) == 1
    finally:
        await app.aclose()
