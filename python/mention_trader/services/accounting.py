"""Trade arithmetic: sizing, fill aggregation and profit.

The fill average is a plain mean of per-fill prices and profit compares raw
summed fill prices. Both are kept as-is for parity with the original bot's
reports; neither is volume weighted.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Union

from ..errors import DivisionByZero, EmptyFillSet, InsufficientBalance, PriceUnavailable
from ..models.types import AggregatedFill, Fill

# Minimum free quote balance, in quote units, needed to open a cycle
MINIMUM_TRADE_VALUE = Decimal("10")

_CENT = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Number) -> Decimal:
    """Convert venue/config numbers to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_buy_quantity(
    quote_balance_free: Number,
    percentage: Number,
    current_price: Number,
) -> Decimal:
    """Compute how much base asset to buy.

    Args:
        quote_balance_free: Free quote-asset balance
        percentage: Fraction of the free balance to spend, in (0, 1]
        current_price: Current pair price

    Returns:
        Base-asset quantity: (balance * percentage) / price

    Raises:
        InsufficientBalance: balance below MINIMUM_TRADE_VALUE
    """
    balance = to_decimal(quote_balance_free)
    if balance < MINIMUM_TRADE_VALUE:
        raise InsufficientBalance(
            f"Free balance {balance} is below the minimum trade value {MINIMUM_TRADE_VALUE}"
        )

    price = to_decimal(current_price)
    if price <= 0:
        raise PriceUnavailable(f"Cannot size a trade at price {price}")

    return (balance * to_decimal(percentage)) / price


def aggregate_fills(fills: Sequence[Fill]) -> AggregatedFill:
    """Reduce the fills of one order.

    Raises:
        EmptyFillSet: no fills were supplied
    """
    if not fills:
        raise EmptyFillSet("Order returned no fills")

    price_sum = sum((f.price for f in fills), Decimal("0"))
    quantity = sum((f.quantity for f in fills), Decimal("0"))
    commission = sum((f.commission_amount for f in fills), Decimal("0"))

    return AggregatedFill(
        average_price=price_sum / len(fills),
        total_quantity=quantity,
        total_commission=commission,
        commission_asset=fills[0].commission_asset,
        price_sum=price_sum,
        fill_count=len(fills),
    )


def compute_profit_percent(cost_basis: Number, comparison_value: Number) -> Decimal:
    """Percentage change from cost_basis to comparison_value, to 2 places.

    Raises:
        DivisionByZero: cost_basis is zero
    """
    cost = to_decimal(cost_basis)
    if cost == 0:
        raise DivisionByZero("Cannot compute profit against a zero cost basis")

    pct = ((to_decimal(comparison_value) - cost) / cost) * 100
    return pct.quantize(_CENT, rounding=ROUND_HALF_UP)


def round_down_to_step(quantity: Number, step: Number) -> Decimal:
    """Round a quantity down to a multiple of step (no-op for step <= 0)."""
    qty = to_decimal(quantity)
    step_d = to_decimal(step)
    if step_d <= 0:
        return qty
    return (qty // step_d) * step_d
