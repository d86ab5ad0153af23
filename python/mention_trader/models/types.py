"""Core data types for the mention-trader system."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, auto
from typing import Optional, Tuple
import time


class OrderSide(Enum):
    """Order side, valued as the venue spells it."""
    BUY = "BUY"
    SELL = "SELL"


class CycleState(Enum):
    """Trade cycle states."""
    IDLE = auto()
    BUY_PENDING = auto()
    HOLDING = auto()
    SELL_PENDING = auto()
    CLOSED = auto()
    ABORTED = auto()

    @property
    def is_open(self) -> bool:
        """True while a cycle owns the account."""
        return self in (
            CycleState.BUY_PENDING,
            CycleState.HOLDING,
            CycleState.SELL_PENDING,
        )

    @property
    def is_finished(self) -> bool:
        return self in (CycleState.CLOSED, CycleState.ABORTED)


@dataclass(frozen=True)
class SignalEvent:
    """A single post from the followed account."""
    author_id: str
    text: str
    is_reply: bool = False
    post_id: Optional[str] = None


@dataclass(frozen=True)
class Fill:
    """One execution record of an order."""
    price: Decimal
    quantity: Decimal
    commission_amount: Decimal
    commission_asset: str

    @classmethod
    def from_venue(cls, data: dict) -> "Fill":
        """Build a fill from a venue payload.

        Binance fill format:
        {
            "price": "0.10000000",
            "qty": "500.00000000",
            "commission": "0.50000000",
            "commissionAsset": "DOGE"
        }
        """
        return cls(
            price=Decimal(str(data["price"])),
            quantity=Decimal(str(data["qty"])),
            commission_amount=Decimal(str(data.get("commission", "0"))),
            commission_asset=str(data.get("commissionAsset", "")),
        )


@dataclass(frozen=True)
class AggregatedFill:
    """Fills of one order reduced to a summary."""
    average_price: Decimal
    total_quantity: Decimal
    total_commission: Decimal
    commission_asset: str
    price_sum: Decimal
    fill_count: int


@dataclass(frozen=True)
class OrderResult:
    """What the venue reports back for a market order."""
    original_quantity: Decimal
    symbol: str
    side: OrderSide
    fills: Tuple[Fill, ...] = ()
    order_id: Optional[str] = None


@dataclass
class TradeCycle:
    """One buy-then-sell sequence triggered by a single signal."""
    pair_symbol: str
    state: CycleState = CycleState.IDLE
    buy_aggregate: Optional[AggregatedFill] = None
    sell_aggregate: Optional[AggregatedFill] = None
    buy_order: Optional[OrderResult] = None
    sell_order: Optional[OrderResult] = None
    profit_pct: Optional[Decimal] = None
    error: Optional[str] = None
    trigger: Optional[SignalEvent] = None
    started_ts: int = field(default_factory=lambda: current_ts_ms())
    finished_ts: Optional[int] = None

    def finish(self, state: CycleState, error: Optional[str] = None) -> None:
        """Move into a terminal state."""
        self.state = state
        self.error = error
        self.finished_ts = current_ts_ms()


def current_ts_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(time.time() * 1000)
