"""Validation utilities for reward ledger deployments."""

from __future__ import annotations

import re

from .config import LedgerConfig
from .domain.boosters import BoosterCatalog
from .domain.exceptions import ValidationError

_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_config(config: LedgerConfig) -> list[str]:
    """Return list of configuration errors that would break the ledger at runtime."""
    errors: list[str] = []

    storage = config.storage
    if storage.backend not in ("memory", "sqlalchemy"):
        errors.append(f"Unsupported storage backend '{storage.backend}'.")
    if storage.pool_size <= 0:
        errors.append("Storage 'pool_size' must be positive.")

    chain = config.chain
    if not chain.rpc_url.startswith(("http://", "https://")):
        errors.append(f"RPC url '{chain.rpc_url}' must be an http(s) URL.")
    for label, address in (
        ("shop_address", chain.shop_address),
        ("payment_token_address", chain.payment_token_address),
    ):
        if not _ADDRESS.match(address):
            errors.append(f"Chain '{label}' is not a 20-byte hex address: '{address}'.")
    if chain.min_confirmations < 1:
        errors.append("Chain 'min_confirmations' must be at least 1.")
    if chain.timeout_seconds <= 0:
        errors.append("Chain 'timeout_seconds' must be positive.")
    if chain.retries < 0:
        errors.append("Chain 'retries' cannot be negative.")

    rewards = config.rewards
    if rewards.window_hours <= 0:
        errors.append("Reward 'window_hours' must be positive.")
    if rewards.claim_cap <= 0:
        errors.append("Reward 'claim_cap' must be positive.")
    if rewards.grant_retries <= 0:
        errors.append("Reward 'grant_retries' must be positive.")
    for label, size in (
        ("share_claims", rewards.share_claims),
        ("mini_app_claims", rewards.mini_app_claims),
        ("follow_claims", rewards.follow_claims),
    ):
        if size <= 0:
            errors.append(f"Reward '{label}' must be positive.")
    for label, hours in (
        ("share_cooldown_hours", rewards.share_cooldown_hours),
        ("mini_app_cooldown_hours", rewards.mini_app_cooldown_hours),
    ):
        if hours < 0:
            errors.append(f"Reward '{label}' cannot be negative.")

    identity = config.identity
    if identity.backend == "http" and not identity.api_key:
        errors.append("Identity backend 'http' requires an API key.")
    elif identity.backend not in ("static", "http"):
        errors.append(f"Unsupported identity backend '{identity.backend}'.")
    for fid, addresses in identity.wallets.items():
        for address in addresses:
            if not _ADDRESS.match(address):
                errors.append(f"Wallet '{address}' linked to fid {fid} is not a valid address.")

    try:
        catalog = BoosterCatalog(price_overrides=config.booster_prices)
    except ValidationError as exc:
        errors.append(f"Booster prices: {exc}")
    else:
        for spec in catalog.all():
            if spec.price_wei <= 0:
                errors.append(f"Booster '{spec.name}' must have a positive price.")

    api = config.api
    if not 0 < api.port < 65536:
        errors.append(f"API port {api.port} is out of range.")
    if api.require_auth and not api.auth_keys:
        errors.append("API authentication is required but no keys are configured.")

    return errors


__all__ = ["validate_config"]
