"""Top level application object wiring the ledger services together."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .chain.identity import NeynarWalletResolver, StaticWalletResolver, WalletResolver
from .chain.rpc import ChainClient, JsonRpcClient
from .chain.verifier import PurchaseVerifier
from .config import LedgerConfig
from .domain.boosters import BoosterCatalog
from .domain.channels import RewardChannel, policies_from_config
from .domain.cooldown import HOUR_MS, now_ms
from .domain.events import EventBus
from .domain.inventory import InventoryLedger
from .domain.player import PlayerService
from .domain.purchases import IdempotencyGuard, PurchaseService
from .domain.rewards import RewardGrantService
from .storage.base import PlayerStore
from .storage.memory import InMemoryPlayerStore
from .storage.sqlalchemy import AsyncSQLAlchemyStorage

logger = logging.getLogger(__name__)


class LedgerApp:
    """Central dependency container used by the HTTP layer, the CLI and tests."""

    def __init__(
        self,
        config: LedgerConfig,
        *,
        player_store: PlayerStore | None = None,
        chain_client: ChainClient | None = None,
        wallet_resolver: WalletResolver | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.catalog = BoosterCatalog(price_overrides=config.booster_prices)
        self.clock = clock

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        self._owned_clients: list[Any] = []
        self.player_store = player_store or self._wire_storage()
        self.chain_client = chain_client or self._wire_chain()
        self.wallet_resolver = wallet_resolver or self._wire_identity()

        rewards = config.rewards
        self.rewards: dict[RewardChannel, RewardGrantService] = {
            channel: RewardGrantService(
                policy,
                self.player_store,
                self.event_bus,
                window_ms=int(rewards.window_hours * HOUR_MS),
                claim_cap=rewards.claim_cap,
                max_attempts=rewards.grant_retries,
                clock=clock,
            )
            for channel, policy in policies_from_config(rewards).items()
        }

        self.inventory = InventoryLedger(self.player_store, self.catalog, clock=clock)
        self.verifier = PurchaseVerifier(
            self.chain_client,
            self.wallet_resolver,
            self.catalog,
            shop_address=config.chain.shop_address,
            payment_token_address=config.chain.payment_token_address,
            min_confirmations=config.chain.min_confirmations,
        )
        self.idempotency_guard = IdempotencyGuard(self.player_store)
        self.purchases = PurchaseService(
            self.player_store,
            self.idempotency_guard,
            self.verifier,
            self.inventory,
            self.catalog,
            self.event_bus,
        )
        self.player_service = PlayerService(
            self.player_store, self.inventory, self.catalog, self.event_bus
        )

    def reward_service(self, channel: RewardChannel | str) -> RewardGrantService:
        return self.rewards[RewardChannel.parse(channel)]

    def _wire_storage(self) -> PlayerStore:
        backend = self.config.storage.backend
        if backend == "memory":
            return InMemoryPlayerStore()
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(
                dsn, echo=self.config.storage.echo_sql, pool_size=self.config.storage.pool_size
            )
            self._sqlalchemy_storage = storage
            return storage.player_store()
        raise ValueError(f"Unsupported storage backend {backend}")

    def _wire_chain(self) -> ChainClient:
        chain = self.config.chain
        client = JsonRpcClient(chain.rpc_url, timeout_s=chain.timeout_seconds, retries=chain.retries)
        self._owned_clients.append(client)
        return client

    def _wire_identity(self) -> WalletResolver:
        identity = self.config.identity
        if identity.backend == "static":
            return StaticWalletResolver(identity.wallets)
        if identity.backend == "http":
            if not identity.api_key:
                raise ValueError("HTTP identity backend requires an API key")
            resolver = NeynarWalletResolver(
                identity.api_url, identity.api_key, timeout_s=self.config.chain.timeout_seconds
            )
            self._owned_clients.append(resolver)
            return resolver
        raise ValueError(f"Unsupported identity backend {identity.backend}")

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "identity": self.config.identity.backend,
            "rpc_url": self.config.chain.rpc_url,
            "channels": {
                channel.value: {
                    "grant_size": service.policy.grant_size,
                    "cooldown_ms": service.policy.cooldown_ms,
                    "one_time": service.policy.one_time,
                }
                for channel, service in self.rewards.items()
            },
            "boosters": {spec.name: spec.price_wei for spec in self.catalog.all()},
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def aclose(self) -> None:
        """Release the connection pool and HTTP clients created by this app."""
        for client in self._owned_clients:
            await client.aclose()
        self._owned_clients.clear()
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
        logger.debug("Ledger resources released")
