"""SQLAlchemy storage backend for the reward ledger."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Sequence

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Integer,
    String,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .base import (
    BalanceTooLow,
    BoosterTransaction,
    PlayerNotRegistered,
    PlayerRecord,
    PlayerStore,
    StorageUnavailable,
    TransactionAlreadyRecorded,
    check_grant_fields,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class PlayerTable(Base):
    __tablename__ = "rewardledger_players"

    fid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    last_share_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_follow_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_mini_app_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    has_followed: Mapped[bool] = mapped_column(Boolean, default=False)
    gift_box_claims_in_period: Mapped[int] = mapped_column(Integer, default=0)
    last_gift_box_update: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=0)


class BoosterBalanceTable(Base):
    __tablename__ = "rewardledger_booster_balances"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_booster_balance_non_negative"),)

    fid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    kind: Mapped[str] = mapped_column(String(32), primary_key=True)
    amount: Mapped[int] = mapped_column(Integer, default=0)


class BoosterTransactionTable(Base):
    __tablename__ = "rewardledger_booster_transactions"

    # Primary key doubles as the global idempotency index.
    transaction_id: Mapped[str] = mapped_column(String(130), primary_key=True)
    fid: Mapped[int] = mapped_column(BigInteger, index=True)
    kind: Mapped[str] = mapped_column(String(32))
    quantity: Mapped[int] = mapped_column(Integer)
    timestamp: Mapped[int] = mapped_column(BigInteger)


class AsyncSQLAlchemyStorage:
    """Process-wide engine and connection pool shared by all requests."""

    def __init__(self, dsn: str, *, echo: bool = False, pool_size: int = 10) -> None:
        options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        if not dsn.startswith("sqlite"):
            options["pool_size"] = pool_size
        self._engine = create_async_engine(dsn, **options)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def player_store(self) -> "AsyncSQLAlchemyPlayerStore":
        return AsyncSQLAlchemyPlayerStore(self._session_factory)


class AsyncSQLAlchemyPlayerStore(PlayerStore):
    # Attempts for a credit that lost a race creating the balance row.
    credit_attempts = 3

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory.begin() as session:
                yield session
        except (OperationalError, InterfaceError) as exc:
            logger.error("Player store unavailable: %s", exc.__class__.__name__)
            raise StorageUnavailable("player store unavailable") from exc

    async def get(self, fid: int) -> PlayerRecord | None:
        async with self._transaction() as session:
            row = await session.get(PlayerTable, fid)
            if row is None:
                return None
            balances = await self._balances(session, fid)
            stmt = (
                select(BoosterTransactionTable)
                .where(BoosterTransactionTable.fid == fid)
                .order_by(BoosterTransactionTable.timestamp, BoosterTransactionTable.transaction_id)
            )
            transactions = (await session.execute(stmt)).scalars().all()
            return _to_record(row, balances, transactions)

    async def ensure(self, fid: int) -> PlayerRecord:
        record = await self.get(fid)
        if record is not None:
            return record
        try:
            async with self._transaction() as session:
                session.add(
                    PlayerTable(fid=fid, has_followed=False, gift_box_claims_in_period=0, version=0)
                )
        except IntegrityError:
            logger.debug("Player %s created concurrently", fid)
        record = await self.get(fid)
        if record is None:
            raise StorageUnavailable(f"player {fid} vanished after creation")
        return record

    async def compare_and_set(
        self, fid: int, expected_version: int, fields: Mapping[str, Any], *, timestamp: int
    ) -> bool:
        check_grant_fields(fields)
        async with self._transaction() as session:
            stmt = (
                update(PlayerTable)
                .where(PlayerTable.fid == fid, PlayerTable.version == expected_version)
                .values(**fields, version=PlayerTable.version + 1, updated_at=timestamp)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def credit_boosters(
        self, fid: int, kind: str, quantity: int, transaction_id: str, timestamp: int
    ) -> int:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._credit_once(fid, kind, quantity, transaction_id, timestamp)
            except IntegrityError as exc:
                prior = await self.find_transaction(transaction_id)
                if prior is not None:
                    raise TransactionAlreadyRecorded(transaction_id, prior) from exc
                if attempt >= self.credit_attempts:
                    raise StorageUnavailable("booster credit kept conflicting") from exc
                logger.debug("Retrying booster credit for %s after balance-row race", fid)

    async def _credit_once(
        self, fid: int, kind: str, quantity: int, transaction_id: str, timestamp: int
    ) -> int:
        async with self._transaction() as session:
            if await session.get(PlayerTable, fid) is None:
                raise PlayerNotRegistered(fid)
            session.add(
                BoosterTransactionTable(
                    transaction_id=transaction_id,
                    fid=fid,
                    kind=kind,
                    quantity=quantity,
                    timestamp=timestamp,
                )
            )
            await session.flush()
            stmt = (
                update(BoosterBalanceTable)
                .where(BoosterBalanceTable.fid == fid, BoosterBalanceTable.kind == kind)
                .values(amount=BoosterBalanceTable.amount + quantity)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                session.add(BoosterBalanceTable(fid=fid, kind=kind, amount=quantity))
            await self._touch(session, fid, timestamp)
            await session.flush()
            total = await session.scalar(
                select(BoosterBalanceTable.amount).where(
                    BoosterBalanceTable.fid == fid, BoosterBalanceTable.kind == kind
                )
            )
            return int(total or 0)

    async def debit_boosters(
        self, fid: int, kind: str, quantity: int, timestamp: int
    ) -> dict[str, int]:
        async with self._transaction() as session:
            stmt = (
                update(BoosterBalanceTable)
                .where(
                    BoosterBalanceTable.fid == fid,
                    BoosterBalanceTable.kind == kind,
                    BoosterBalanceTable.amount >= quantity,
                )
                .values(amount=BoosterBalanceTable.amount - quantity)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                if await session.get(PlayerTable, fid) is None:
                    raise PlayerNotRegistered(fid)
                available = await session.scalar(
                    select(BoosterBalanceTable.amount).where(
                        BoosterBalanceTable.fid == fid, BoosterBalanceTable.kind == kind
                    )
                )
                raise BalanceTooLow(kind, int(available or 0), quantity)
            await self._touch(session, fid, timestamp)
            return await self._balances(session, fid)

    async def find_transaction(self, transaction_id: str) -> BoosterTransaction | None:
        async with self._transaction() as session:
            row = await session.get(BoosterTransactionTable, transaction_id)
            return _to_transaction(row) if row else None

    async def _balances(self, session: AsyncSession, fid: int) -> dict[str, int]:
        stmt = select(BoosterBalanceTable).where(BoosterBalanceTable.fid == fid)
        rows = (await session.execute(stmt)).scalars().all()
        return {row.kind: row.amount for row in rows}

    async def _touch(self, session: AsyncSession, fid: int, timestamp: int) -> None:
        await session.execute(
            update(PlayerTable)
            .where(PlayerTable.fid == fid)
            .values(updated_at=timestamp)
            .execution_options(synchronize_session=False)
        )


def _to_transaction(row: BoosterTransactionTable) -> BoosterTransaction:
    return BoosterTransaction(
        fid=row.fid,
        kind=row.kind,
        quantity=row.quantity,
        transaction_id=row.transaction_id,
        timestamp=row.timestamp,
    )


def _to_record(
    row: PlayerTable,
    balances: Mapping[str, int],
    transactions: Sequence[BoosterTransactionTable],
) -> PlayerRecord:
    return PlayerRecord(
        fid=row.fid,
        last_share_time=row.last_share_time,
        last_follow_time=row.last_follow_time,
        last_mini_app_time=row.last_mini_app_time,
        has_followed=bool(row.has_followed),
        gift_box_claims_in_period=row.gift_box_claims_in_period or 0,
        last_gift_box_update=row.last_gift_box_update,
        boosters=dict(balances),
        booster_transactions=[_to_transaction(tx) for tx in transactions],
        updated_at=row.updated_at,
        version=row.version or 0,
    )
