"""Pytest fixtures for the reward ledger."""

from __future__ import annotations

import pytest

from ..app import LedgerApp
from ..chain.identity import StaticWalletResolver
from ..config import LedgerConfig
from ..storage.memory import InMemoryPlayerStore
from .chain import FakeChainClient
from .clock import ManualClock


@pytest.fixture()
def memory_app() -> LedgerApp:
    return app_fixture()


def app_fixture(config: LedgerConfig | None = None, **kwargs) -> LedgerApp:
    """Build an app on in-memory fakes; keyword arguments replace individual collaborators."""
    config = config or LedgerConfig()
    kwargs.setdefault("player_store", InMemoryPlayerStore())
    kwargs.setdefault(
        "chain_client",
        FakeChainClient(
            shop_address=config.chain.shop_address,
            payment_token_address=config.chain.payment_token_address,
        ),
    )
    kwargs.setdefault("wallet_resolver", StaticWalletResolver())
    kwargs.setdefault("clock", ManualClock())
    return LedgerApp(config, **kwargs)
