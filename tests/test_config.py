"""Tests for configuration module."""

from dataclasses import FrozenInstanceError, replace

import pytest
from mention_trader.config import (
    Config,
    Credentials,
    TrackingConfig,
    TradeConfig,
    VenueConfig,
    load_config,
    save_config,
)
from mention_trader.errors import ConfigurationError


class TestDefaultConfig:
    """Tests for default configuration values."""

    def test_default_trade_config(self):
        config = TradeConfig()
        assert config.enabled is False
        assert config.balance_percentage == 1.0
        assert config.time_to_sell_minutes == 5
        assert config.quote_asset == "USDT"
        assert config.sell_quantity_step == 1.0

    def test_default_tracking_config(self):
        config = TrackingConfig()
        assert config.allow_replies is False
        assert config.account_id == ""

    def test_default_venue_config(self):
        config = VenueConfig()
        assert config.recv_window_ms == 60000
        assert config.url == "https://api.binance.com"

    def test_pair_symbol(self):
        assert TradeConfig(base_asset="DOGE", quote_asset="USDT").pair_symbol == "DOGEUSDT"

    def test_trade_config_is_frozen(self):
        config = TradeConfig()
        with pytest.raises(FrozenInstanceError):
            config.enabled = True


class TestConfigFromDict:
    """Tests for Config.from_dict method."""

    def test_partial_dict(self):
        data = {
            "tracking": {"account_id": 44196397},
            "trade": {"enabled": True, "base_asset": "DOGE"},
        }
        config = Config.from_dict(data)
        assert config.tracking.account_id == "44196397"
        assert config.trade.enabled is True
        assert config.trade.base_asset == "DOGE"
        # Defaults should be preserved
        assert config.trade.quote_asset == "USDT"
        assert config.venue.recv_window_ms == 60000

    def test_unknown_keys_ignored(self):
        config = Config.from_dict({"trade": {"leverage": 50}, "venue": {"bogus": 1}})
        assert not hasattr(config.trade, "leverage")

    def test_empty_dict(self):
        config = Config.from_dict({})
        assert config.trade.enabled is False

    def test_round_trip_dict(self):
        config = Config.from_dict({"trade": {"base_asset": "PEPE"}})
        again = Config.from_dict(config.to_dict())
        assert again.trade == config.trade


class TestConfigValidation:
    """Tests for configuration validation."""

    def _valid(self):
        return Config(
            tracking=TrackingConfig(account_id="1"),
            trade=TradeConfig(enabled=True, base_asset="DOGE", quote_asset="USDT"),
        )

    def test_valid(self):
        self._valid().validate()

    def test_account_required(self):
        config = self._valid()
        config.tracking.account_id = ""
        with pytest.raises(ConfigurationError):
            config.validate()

    @pytest.mark.parametrize("pct", [0, -0.1, 1.01])
    def test_percentage_range(self, pct):
        with pytest.raises(ConfigurationError):
            replace(self._valid().trade, balance_percentage=pct).validate()

    @pytest.mark.parametrize("minutes", [0, -5, 1.5])
    def test_time_to_sell_positive_int(self, minutes):
        with pytest.raises(ConfigurationError):
            replace(self._valid().trade, time_to_sell_minutes=minutes).validate()

    def test_assets_must_differ(self):
        with pytest.raises(ConfigurationError):
            replace(self._valid().trade, quote_asset="DOGE").validate()

    def test_base_asset_required_when_enabled(self):
        with pytest.raises(ConfigurationError):
            replace(self._valid().trade, base_asset="").validate()

    def test_disabled_allows_missing_asset(self):
        TradeConfig(enabled=False, base_asset="").validate()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_yaml(self, tmp_path):
        config_file = tmp_path / "test_config.yaml"
        config_file.write_text("""
tracking:
  account_id: "44196397"
  allow_replies: true

trade:
  enabled: true
  base_asset: DOGE
  balance_percentage: 0.25
""")
        config = load_config(str(config_file))
        assert config.tracking.allow_replies is True
        assert config.trade.balance_percentage == 0.25
        assert config.trade.pair_symbol == "DOGEUSDT"

    def test_env_var_path(self, tmp_path, monkeypatch):
        config_file = tmp_path / "env.yaml"
        config_file.write_text("trade:\n  base_asset: SHIB\n")
        monkeypatch.setenv("MENTION_TRADER_CONFIG", str(config_file))
        assert load_config().trade.base_asset == "SHIB"

    def test_load_nonexistent_returns_default(self):
        config = load_config("/nonexistent/path/config.yaml")
        assert config.trade.enabled is False

    def test_save_and_load(self, tmp_path):
        config = Config.from_dict({"trade": {"base_asset": "DOGE", "enabled": True}})
        path = tmp_path / "out" / "config.yaml"
        save_config(config, str(path))
        loaded = load_config(str(path))
        assert loaded.trade == config.trade


class TestCredentials:
    """Tests for environment credentials."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TWITTER_BEARER_TOKEN", "bearer")
        monkeypatch.setenv("BINANCE_API_KEY", "key")
        monkeypatch.delenv("BINANCE_API_SECRET", raising=False)
        creds = Credentials.from_env()
        assert creds.twitter_bearer_token == "bearer"
        creds.require_twitter()
        with pytest.raises(ConfigurationError):
            creds.require_binance()

    def test_missing_twitter(self):
        with pytest.raises(ConfigurationError):
            Credentials().require_twitter()
