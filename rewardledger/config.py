"""Configuration models for the reward ledger."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Literal, Mapping

StorageBackend = Literal["memory", "sqlalchemy"]
IdentityBackend = Literal["static", "http"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure where player records are persisted."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False
    pool_size: int = 10

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./rewardledger.db"
        return None


@dataclass(slots=True)
class ChainConfig:
    """Where and how booster payments are verified."""

    rpc_url: str = "https://arb1.arbitrum.io/rpc"
    shop_address: str = "0x31c72c62aD07f50a51660F39f601ffdA16B427B3"
    payment_token_address: str = "0xe461003E78A7bF4F14F0D30b3ac490701980aB07"
    min_confirmations: int = 1
    timeout_seconds: float = 10.0
    retries: int = 2


@dataclass(slots=True)
class RewardConfig:
    """Claim budget window and per-channel grant rules."""

    window_hours: float = 12
    claim_cap: int = 5
    grant_retries: int = 5
    share_claims: int = 2
    share_cooldown_hours: float = 6
    mini_app_claims: int = 3
    mini_app_cooldown_hours: float = 3
    follow_claims: int = 1


@dataclass(slots=True)
class IdentityConfig:
    """Resolve a player's fid to the wallets allowed to pay for them."""

    backend: IdentityBackend = "static"
    wallets: Mapping[int, tuple[str, ...]] = field(default_factory=dict)
    api_url: str = "https://api.neynar.com/v2/farcaster/user/bulk"
    api_key: str | None = None


@dataclass(slots=True)
class ApiConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    auth_keys: set[str] = field(default_factory=set)
    require_auth: bool = True


@dataclass(slots=True)
class LedgerConfig:
    """Top-level configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    booster_prices: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables prefixed with REWARDLEDGER_."""
        prefix = "REWARDLEDGER_"

        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),  # type: ignore[arg-type]
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
            pool_size=int(os.getenv(f"{prefix}STORAGE_POOL_SIZE", "10")),
        )

        defaults = ChainConfig()
        chain = ChainConfig(
            rpc_url=os.getenv(f"{prefix}RPC_URL", defaults.rpc_url),
            shop_address=os.getenv(f"{prefix}SHOP_ADDRESS", defaults.shop_address),
            payment_token_address=os.getenv(
                f"{prefix}PAYMENT_TOKEN_ADDRESS", defaults.payment_token_address
            ),
            min_confirmations=int(os.getenv(f"{prefix}MIN_CONFIRMATIONS", "1")),
            timeout_seconds=float(os.getenv(f"{prefix}RPC_TIMEOUT", "10")),
            retries=int(os.getenv(f"{prefix}RPC_RETRIES", "2")),
        )

        rewards = RewardConfig(
            window_hours=float(os.getenv(f"{prefix}CLAIM_WINDOW_HOURS", "12")),
            claim_cap=int(os.getenv(f"{prefix}CLAIM_CAP", "5")),
            grant_retries=int(os.getenv(f"{prefix}GRANT_RETRIES", "5")),
            share_claims=int(os.getenv(f"{prefix}SHARE_CLAIMS", "2")),
            share_cooldown_hours=float(os.getenv(f"{prefix}SHARE_COOLDOWN_HOURS", "6")),
            mini_app_claims=int(os.getenv(f"{prefix}MINI_APP_CLAIMS", "3")),
            mini_app_cooldown_hours=float(os.getenv(f"{prefix}MINI_APP_COOLDOWN_HOURS", "3")),
            follow_claims=int(os.getenv(f"{prefix}FOLLOW_CLAIMS", "1")),
        )

        identity = IdentityConfig(
            backend=os.getenv(f"{prefix}IDENTITY_BACKEND", "static"),  # type: ignore[arg-type]
            wallets=_parse_wallets(os.getenv(f"{prefix}IDENTITY_WALLETS")),
            api_url=os.getenv(f"{prefix}IDENTITY_API_URL", IdentityConfig().api_url),
            api_key=os.getenv(f"{prefix}IDENTITY_API_KEY"),
        )

        api = ApiConfig(
            host=os.getenv(f"{prefix}API_HOST", "0.0.0.0"),
            port=int(os.getenv(f"{prefix}API_PORT", "8000")),
            auth_keys={
                key.strip()
                for key in os.getenv(f"{prefix}API_KEYS", "").split(",")
                if key.strip()
            },
            require_auth=os.getenv(f"{prefix}API_REQUIRE_AUTH", "true").lower() in _TRUTHY,
        )

        return cls(
            storage=storage,
            chain=chain,
            rewards=rewards,
            identity=identity,
            api=api,
            booster_prices=_parse_prices(os.getenv(f"{prefix}BOOSTER_PRICES")),
        )


def _load_json_object(raw: str, variable: str) -> dict:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON for {variable}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{variable} must be a JSON object")
    return data


def _parse_wallets(raw: str | None) -> Mapping[int, tuple[str, ...]]:
    if not raw:
        return {}
    data = _load_json_object(raw, "REWARDLEDGER_IDENTITY_WALLETS")
    wallets: dict[int, tuple[str, ...]] = {}
    for fid, addresses in data.items():
        if isinstance(addresses, str):
            addresses = [addresses]
        wallets[int(fid)] = tuple(str(address).lower() for address in addresses)
    return wallets


def _parse_prices(raw: str | None) -> Mapping[str, int]:
    if not raw:
        return {}
    data = _load_json_object(raw, "REWARDLEDGER_BOOSTER_PRICES")
    return {str(k): int(v) for k, v in data.items()}
