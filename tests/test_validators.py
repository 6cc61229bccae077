import pytest

from rewardledger.config import (
    ApiConfig,
    ChainConfig,
    IdentityConfig,
    LedgerConfig,
    RewardConfig,
)
from rewardledger.validators import validate_config


def test_default_config_only_misses_api_keys():
    issues = validate_config(LedgerConfig())
    assert issues == ["API authentication is required but no keys are configured."]


def test_validate_config_success():
    config = LedgerConfig(api=ApiConfig(auth_keys={"k"}))
    assert validate_config(config) == []


def test_validate_config_reports_each_problem():
    config = LedgerConfig(
        chain=ChainConfig(shop_address="0x123", min_confirmations=0),
        rewards=RewardConfig(claim_cap=0, share_claims=0),
        identity=IdentityConfig(backend="http"),
        api=ApiConfig(require_auth=False),
        booster_prices={"shuffle": 0},
    )
    issues = validate_config(config)
    assert any("shop_address" in issue for issue in issues)
    assert any("min_confirmations" in issue for issue in issues)
    assert any("claim_cap" in issue for issue in issues)
    assert any("share_claims" in issue for issue in issues)
    assert any("requires an API key" in issue for issue in issues)
    assert any("'shuffle' must have a positive price" in issue for issue in issues)


def test_from_env(monkeypatch):
    monkeypatch.setenv("REWARDLEDGER_STORAGE_BACKEND", "sqlalchemy")
    monkeypatch.setenv("REWARDLEDGER_MIN_CONFIRMATIONS", "3")
    monkeypatch.setenv("REWARDLEDGER_SHARE_COOLDOWN_HOURS", "1.5")
    monkeypatch.setenv("REWARDLEDGER_IDENTITY_WALLETS", '{"7": "0xABC", "8": ["0x1", "0x2"]}')
    monkeypatch.setenv("REWARDLEDGER_BOOSTER_PRICES", '{"shuffle": 1000}')
    monkeypatch.setenv("REWARDLEDGER_API_KEYS", "a, b,")
    monkeypatch.setenv("REWARDLEDGER_API_REQUIRE_AUTH", "false")

    config = LedgerConfig.from_env()
    assert config.storage.backend == "sqlalchemy"
    assert config.storage.resolve_dsn() == "sqlite+aiosqlite:///./rewardledger.db"
    assert config.chain.min_confirmations == 3
    assert config.rewards.share_cooldown_hours == 1.5
    assert config.identity.wallets == {7: ("0xabc",), 8: ("0x1", "0x2")}
    assert config.booster_prices == {"shuffle": 1000}
    assert config.api.auth_keys == {"a", "b"}
    assert config.api.require_auth is False


def test_from_env_rejects_malformed_json(monkeypatch):
    monkeypatch.setenv("REWARDLEDGER_BOOSTER_PRICES", "[1, 2]")
    with pytest.raises(ValueError):
        LedgerConfig.from_env()
