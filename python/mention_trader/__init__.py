"""
Mention Trader - Buy-the-mention trading bot

Follows a single social-media account and, when one of its posts mentions
the configured coin, market-buys it on Binance spot and sells the whole
position a fixed number of minutes later, reporting fills and profit.
"""

__version__ = "0.1.0"
__author__ = "mention-trader"

from .config import Config, TradeConfig, Credentials, load_config
from .errors import (
    MentionTraderError,
    ConfigurationError,
    TradeCycleError,
    InsufficientBalance,
    EmptyFillSet,
    AssetNotFound,
    PriceUnavailable,
    OrderRejected,
    NetworkError,
    DivisionByZero,
)
from .models.types import (
    SignalEvent,
    Fill,
    AggregatedFill,
    OrderResult,
    OrderSide,
    CycleState,
    TradeCycle,
)
from .orchestrator import Orchestrator, TradingMode, start_tracking
from .services import (
    SignalFilter,
    TradeCycleController,
    TwitterStreamSource,
    MockSignalSource,
    BinanceSpotClient,
    PaperVenue,
)

__all__ = [
    # Config
    "Config",
    "TradeConfig",
    "Credentials",
    "load_config",
    # Errors
    "MentionTraderError",
    "ConfigurationError",
    "TradeCycleError",
    "InsufficientBalance",
    "EmptyFillSet",
    "AssetNotFound",
    "PriceUnavailable",
    "OrderRejected",
    "NetworkError",
    "DivisionByZero",
    # Types
    "SignalEvent",
    "Fill",
    "AggregatedFill",
    "OrderResult",
    "OrderSide",
    "CycleState",
    "TradeCycle",
    # Orchestrator
    "Orchestrator",
    "TradingMode",
    "start_tracking",
    # Services
    "SignalFilter",
    "TradeCycleController",
    "TwitterStreamSource",
    "MockSignalSource",
    "BinanceSpotClient",
    "PaperVenue",
]
