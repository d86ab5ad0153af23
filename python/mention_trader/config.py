"""Configuration management for the mention-trader system."""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional
import yaml

from .errors import ConfigurationError


@dataclass
class TrackingConfig:
    """Which account to follow and how to reach the stream."""
    account_id: str = ""
    allow_replies: bool = False
    stream_url: str = "https://api.twitter.com/2/tweets/search/stream"
    rules_url: str = "https://api.twitter.com/2/tweets/search/stream/rules"


@dataclass(frozen=True)
class TradeConfig:
    """Trading configuration. Immutable once built."""
    enabled: bool = False
    balance_percentage: float = 1.0
    time_to_sell_minutes: int = 5
    base_asset: str = ""
    quote_asset: str = "USDT"
    sell_quantity_step: float = 1.0

    @property
    def pair_symbol(self) -> str:
        return f"{self.base_asset}{self.quote_asset}"

    def validate(self) -> None:
        """Check the trade section invariants.

        Raises:
            ConfigurationError: on any violated invariant
        """
        if not 0 < self.balance_percentage <= 1:
            raise ConfigurationError(
                f"balance_percentage must be in (0, 1], got {self.balance_percentage}"
            )
        if int(self.time_to_sell_minutes) != self.time_to_sell_minutes or self.time_to_sell_minutes <= 0:
            raise ConfigurationError(
                f"time_to_sell_minutes must be a positive integer, got {self.time_to_sell_minutes}"
            )
        if self.sell_quantity_step < 0:
            raise ConfigurationError("sell_quantity_step cannot be negative")
        if self.enabled:
            if not self.base_asset or not self.quote_asset:
                raise ConfigurationError("base_asset and quote_asset are required when trading is enabled")
            if self.base_asset == self.quote_asset:
                raise ConfigurationError("base_asset and quote_asset must differ")


@dataclass
class VenueConfig:
    """Trading venue (Binance spot) configuration."""
    base_url: str = "https://api.binance.com"
    testnet_url: str = "https://testnet.binance.vision"
    use_testnet: bool = False
    recv_window_ms: int = 60000
    request_timeout_s: float = 15.0
    paper_commission_rate: float = 0.001
    paper_quote_balance: float = 1000.0

    @property
    def url(self) -> str:
        return self.testnet_url if self.use_testnet else self.base_url


@dataclass
class Config:
    """Main configuration for the mention-trader system."""
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    trade: TradeConfig = field(default_factory=TradeConfig)
    venue: VenueConfig = field(default_factory=VenueConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        config = cls()
        for section_name, section_obj in (("tracking", config.tracking), ("venue", config.venue)):
            if section_name in data:
                for key, value in (data[section_name] or {}).items():
                    if hasattr(section_obj, key):
                        setattr(section_obj, key, value)

        # TradeConfig is frozen, so it is rebuilt rather than mutated
        trade_data = data.get("trade") or {}
        known = {f.name for f in fields(TradeConfig)}
        config.trade = replace(
            config.trade,
            **{k: v for k, v in trade_data.items() if k in known},
        )
        # Account ids arrive as YAML ints more often than not
        config.tracking.account_id = str(config.tracking.account_id or "")
        return config

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "tracking": self.tracking.__dict__.copy(),
            "trade": self.trade.__dict__.copy(),
            "venue": self.venue.__dict__.copy(),
        }

    def validate(self) -> None:
        """Validate the whole configuration.

        Raises:
            ConfigurationError: if the config cannot drive the bot
        """
        if not self.tracking.account_id:
            raise ConfigurationError("tracking.account_id is required")
        self.trade.validate()


@dataclass
class Credentials:
    """Secrets read from the environment."""
    twitter_bearer_token: Optional[str] = None
    binance_api_key: Optional[str] = None
    binance_api_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Credentials":
        return cls(
            twitter_bearer_token=os.environ.get("TWITTER_BEARER_TOKEN"),
            binance_api_key=os.environ.get("BINANCE_API_KEY"),
            binance_api_secret=os.environ.get("BINANCE_API_SECRET"),
        )

    def require_twitter(self) -> None:
        if not self.twitter_bearer_token:
            raise ConfigurationError("TWITTER_BEARER_TOKEN is not defined in the environment variables.")

    def require_binance(self) -> None:
        if not self.binance_api_key:
            raise ConfigurationError("BINANCE_API_KEY is not defined in the environment variables.")
        if not self.binance_api_secret:
            raise ConfigurationError("BINANCE_API_SECRET is not defined in the environment variables.")


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, looks for:
            1. MENTION_TRADER_CONFIG env var
            2. ./config/default.yaml
            3. Uses default config

    Returns:
        Config object
    """
    if config_path is None:
        config_path = os.environ.get("MENTION_TRADER_CONFIG")

    if config_path is None:
        default_path = Path("./config/default.yaml")
        if default_path.exists():
            config_path = str(default_path)

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "r") as f:
                data = yaml.safe_load(f)
                return Config.from_dict(data or {})

    return Config()


def save_config(config: Config, config_path: str) -> None:
    """Save configuration to YAML file."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
