"""Services for the mention-trader system."""

from .signal_filter import SignalFilter
from .trade_cycle import TradeCycleController, ControllerStats
from .stream import TwitterStreamSource, MockSignalSource
from .venue import BinanceSpotClient, PaperVenue

__all__ = [
    "SignalFilter",
    "TradeCycleController",
    "ControllerStats",
    "TwitterStreamSource",
    "MockSignalSource",
    "BinanceSpotClient",
    "PaperVenue",
]
