"""Testing utilities for the reward ledger."""

from .chain import FakeChainClient
from .clock import ManualClock
from .factory import PlayerFactory, TestPlayer
from .fixtures import app_fixture, memory_app

__all__ = [
    "FakeChainClient",
    "ManualClock",
    "PlayerFactory",
    "TestPlayer",
    "app_fixture",
    "memory_app",
]
