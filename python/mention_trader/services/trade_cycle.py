"""Trade cycle controller: buy on signal, sell after a delay.

State machine:
    IDLE -> BUY_PENDING -> HOLDING -> SELL_PENDING -> CLOSED
    BUY_PENDING / SELL_PENDING -> ABORTED on any collaborator failure

Finished cycles (CLOSED or ABORTED) release the controller back to IDLE.
Only one cycle is open at a time; signals arriving meanwhile are rejected.
Nothing is retried.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Protocol

from ..config import Config
from ..errors import InsufficientBalance, TradeCycleError
from ..models.types import (
    CycleState,
    OrderResult,
    OrderSide,
    SignalEvent,
    TradeCycle,
)
from .accounting import (
    aggregate_fills,
    compute_buy_quantity,
    compute_profit_percent,
    round_down_to_step,
)

logger = logging.getLogger(__name__)


class PriceOracle(Protocol):
    async def get_price(self, pair_symbol: str) -> Decimal: ...


class BalanceProvider(Protocol):
    async def get_free_balance(self, asset: str) -> Decimal: ...


class OrderExecutor(Protocol):
    async def submit_market_order(
        self, pair_symbol: str, side: OrderSide, quantity: Decimal
    ) -> OrderResult: ...


CycleCallback = Callable[[TradeCycle], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class ControllerStats:
    """Counters for the controller."""
    signals_accepted: int = 0
    signals_rejected: int = 0
    cycles_closed: int = 0
    cycles_aborted: int = 0


class TradeCycleController:
    """Runs one buy/sell cycle at a time.

    Usage:
        controller = TradeCycleController(config, venue, venue, venue)
        await controller.handle_signal(event)
        ...
        await controller.stop()
    """

    def __init__(
        self,
        config: Config,
        price_oracle: PriceOracle,
        balances: BalanceProvider,
        executor: OrderExecutor,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.config = config
        self.trade_config = config.trade

        self.price_oracle = price_oracle
        self.balances = balances
        self.executor = executor
        self._sleep = sleep

        self._cycle: Optional[TradeCycle] = None
        self._sell_task: Optional[asyncio.Task] = None

        self.last_cycle: Optional[TradeCycle] = None
        self.stats = ControllerStats()

        # Callback for external monitoring
        self.on_cycle_finished: Optional[CycleCallback] = None

    @property
    def state(self) -> CycleState:
        """State of the open cycle, IDLE when none."""
        return self._cycle.state if self._cycle else CycleState.IDLE

    @property
    def is_idle(self) -> bool:
        return self.state == CycleState.IDLE

    @property
    def sell_delay_seconds(self) -> float:
        return self.trade_config.time_to_sell_minutes * 60.0

    async def handle_signal(self, event: SignalEvent) -> bool:
        """Start a cycle for a qualifying signal.

        Runs the buy leg to completion and schedules the sell leg.

        Returns:
            False if a cycle was already open and the signal was dropped
        """
        if not self.is_idle:
            self.stats.signals_rejected += 1
            logger.warning(
                f"Signal {event.post_id} ignored: cycle on {self._cycle.pair_symbol} "
                f"is {self.state.name}"
            )
            return False

        self.stats.signals_accepted += 1
        cycle = TradeCycle(
            pair_symbol=self.trade_config.pair_symbol,
            state=CycleState.BUY_PENDING,
            trigger=event,
        )
        self._cycle = cycle

        await self._buy_leg(cycle)
        return True

    async def _buy_leg(self, cycle: TradeCycle) -> None:
        """BUY_PENDING: size and submit the market buy."""
        quote_asset = self.trade_config.quote_asset

        try:
            price = await self.price_oracle.get_price(cycle.pair_symbol)
            balance = await self.balances.get_free_balance(quote_asset)
            quantity = compute_buy_quantity(
                balance, self.trade_config.balance_percentage, price
            )
            logger.info(
                f"Buying {quantity} {self.trade_config.base_asset} at ~{price} "
                f"({balance} {quote_asset} free)"
            )
            order = await self.executor.submit_market_order(
                cycle.pair_symbol, OrderSide.BUY, quantity
            )
            cycle.buy_order = order
            aggregate = aggregate_fills(order.fills)
        except InsufficientBalance as e:
            logger.error(f"Insufficient {quote_asset} balance: {e}")
            await self._finish(cycle, CycleState.ABORTED, str(e))
            return
        except TradeCycleError as e:
            logger.error(f"Buy leg failed on {cycle.pair_symbol}: {type(e).__name__}: {e}")
            await self._finish(cycle, CycleState.ABORTED, str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected buy leg error on {cycle.pair_symbol}")
            await self._finish(cycle, CycleState.ABORTED, f"{type(e).__name__}: {e}")
            return

        cycle.buy_aggregate = aggregate
        cycle.state = CycleState.HOLDING
        logger.info(
            f"Bought: {order.original_quantity} {order.symbol}. "
            f"Avg. price: {aggregate.average_price} ({aggregate.total_quantity} {order.symbol}). "
            f"Commission fee: {aggregate.total_commission} ({aggregate.commission_asset})."
        )

        logger.info(f"Selling {cycle.pair_symbol} in {self.trade_config.time_to_sell_minutes} min")
        self._sell_task = asyncio.create_task(self._sell_after_delay(cycle))

    async def _sell_after_delay(self, cycle: TradeCycle) -> None:
        """HOLDING: wait out the hold time, then sell."""
        try:
            await self._sleep(self.sell_delay_seconds)
            await self._sell_leg(cycle)
        except asyncio.CancelledError:
            logger.warning(f"Pending sell on {cycle.pair_symbol} cancelled; position may be left open")
            if not cycle.state.is_finished:
                await self._finish(cycle, CycleState.ABORTED, "sell cancelled")
            raise

    async def _sell_leg(self, cycle: TradeCycle) -> None:
        """SELL_PENDING: sell whatever base asset the account holds."""
        cycle.state = CycleState.SELL_PENDING
        base_asset = self.trade_config.base_asset

        try:
            price = await self.price_oracle.get_price(cycle.pair_symbol)
            balance = await self.balances.get_free_balance(base_asset)
            quantity = round_down_to_step(balance, self.trade_config.sell_quantity_step)
            if quantity <= 0:
                raise InsufficientBalance(f"Nothing to sell: {balance} {base_asset} free")

            logger.info(f"Selling {quantity} {base_asset} at ~{price}")
            order = await self.executor.submit_market_order(
                cycle.pair_symbol, OrderSide.SELL, quantity
            )
            cycle.sell_order = order
            aggregate = aggregate_fills(order.fills)
            profit = compute_profit_percent(
                cycle.buy_aggregate.price_sum, aggregate.price_sum
            )
        except TradeCycleError as e:
            logger.error(f"Sell leg failed on {cycle.pair_symbol}: {type(e).__name__}: {e}")
            await self._finish(cycle, CycleState.ABORTED, str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected sell leg error on {cycle.pair_symbol}")
            await self._finish(cycle, CycleState.ABORTED, f"{type(e).__name__}: {e}")
            return

        cycle.sell_aggregate = aggregate
        cycle.profit_pct = profit
        logger.info(
            f"Sold: {order.original_quantity} {order.symbol}. "
            f"Avg. price: {aggregate.average_price} ({aggregate.total_quantity} {order.symbol}). "
            f"Profit: {profit}%. "
            f"Commission fee: {aggregate.total_commission} ({aggregate.commission_asset})."
        )
        await self._finish(cycle, CycleState.CLOSED)

    async def _finish(
        self,
        cycle: TradeCycle,
        state: CycleState,
        error: Optional[str] = None,
    ) -> None:
        """Close out a cycle and return to IDLE."""
        cycle.finish(state, error)
        if state == CycleState.CLOSED:
            self.stats.cycles_closed += 1
        else:
            self.stats.cycles_aborted += 1

        self.last_cycle = cycle
        if self._cycle is cycle:
            self._cycle = None

        if self.on_cycle_finished:
            await self.on_cycle_finished(cycle)

    async def wait_closed(self) -> None:
        """Wait for a scheduled sell, if any, to run to completion."""
        task = self._sell_task
        if task is not None and not task.done():
            await task

    async def stop(self) -> None:
        """Cancel a pending or in-flight sell; the cycle ends ABORTED."""
        task = self._sell_task
        self._sell_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # A task cancelled before its first step never reaches its handler
        if self._cycle is not None and self._cycle.state == CycleState.HOLDING:
            await self._finish(self._cycle, CycleState.ABORTED, "sell cancelled")

    def get_stats(self) -> dict:
        """Get controller stats as dictionary."""
        return {
            "state": self.state.name,
            "signals_accepted": self.stats.signals_accepted,
            "signals_rejected": self.stats.signals_rejected,
            "cycles_closed": self.stats.cycles_closed,
            "cycles_aborted": self.stats.cycles_aborted,
        }
