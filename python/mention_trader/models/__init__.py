"""Data models for the mention-trader system."""

from .types import (
    OrderSide,
    CycleState,
    SignalEvent,
    Fill,
    AggregatedFill,
    OrderResult,
    TradeCycle,
)

__all__ = [
    "OrderSide",
    "CycleState",
    "SignalEvent",
    "Fill",
    "AggregatedFill",
    "OrderResult",
    "TradeCycle",
]
