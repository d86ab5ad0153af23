"""Main orchestrator for the mention-trader system.

Coordinates:
- Post streaming from the tracked account
- Signal filtering
- Trade cycle execution (buy, timed sell, profit report)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Callable, Awaitable, Any

from .config import Config, Credentials
from .models.types import SignalEvent, TradeCycle
from .services.signal_filter import SignalFilter
from .services.stream import TwitterStreamSource
from .services.trade_cycle import TradeCycleController
from .services.venue import BinanceSpotClient, PaperVenue

logger = logging.getLogger(__name__)


class TradingMode:
    """Trading mode constants."""
    PAPER = "paper"
    LIVE = "live"
    SHADOW = "shadow"


@dataclass
class OrchestratorState:
    """Current state of the orchestrator."""
    is_running: bool = False
    posts_seen: int = 0
    signals_matched: int = 0
    last_signal: Optional[SignalEvent] = None
    last_cycle: Optional[TradeCycle] = None


class Orchestrator:
    """Main mention-trader orchestrator.

    Modes:
    - paper: Real posts, simulated fills against a paper account
    - live: Real posts, real orders with real money
    - shadow: Log qualifying posts without trading
    """

    def __init__(
        self,
        config: Config,
        mode: str = TradingMode.PAPER,
        credentials: Optional[Credentials] = None,
        source: Optional[Any] = None,
        venue: Optional[Any] = None,
    ):
        self.config = config
        self.mode = mode
        credentials = credentials or Credentials()

        config.validate()

        # Post source
        if source is None:
            credentials.require_twitter()
            source = TwitterStreamSource(config, credentials.twitter_bearer_token)
        self.source = source

        # Venue
        self._price_client: Optional[BinanceSpotClient] = None
        if venue is None:
            if mode == TradingMode.LIVE and config.trade.enabled:
                credentials.require_binance()
                venue = BinanceSpotClient(
                    config,
                    credentials.binance_api_key,
                    credentials.binance_api_secret,
                )
            else:
                # Public ticker needs no keys
                self._price_client = BinanceSpotClient(config, "", "")
                venue = PaperVenue(
                    config,
                    balances={config.trade.quote_asset: config.venue.paper_quote_balance},
                    price_source=self._price_client,
                )
        self.venue = venue

        # Core engines
        self.signal_filter = SignalFilter(config)
        self.controller = TradeCycleController(config, venue, venue, venue)
        self.controller.on_cycle_finished = self._on_cycle_finished

        # State
        self.state = OrchestratorState()

        # Callbacks for external monitoring
        self.on_signal: Optional[Callable[[SignalEvent], Awaitable[None]]] = None
        self.on_cycle: Optional[Callable[[TradeCycle], Awaitable[None]]] = None

    async def start_tracking(self) -> None:
        """Consume the post source until it ends or stop() is called."""
        logger.info(f"Starting orchestrator in {self.mode} mode")

        if self._price_client is not None:
            await self._price_client.start()
        await self.venue.start()

        self.state.is_running = True
        try:
            async for event in self.source:
                await self._on_event(event)
                if not self.state.is_running:
                    break

            # Let a scheduled sell finish when the source runs dry
            if self.state.is_running:
                await self.controller.wait_closed()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the orchestrator and cancel any pending sell."""
        if not self.state.is_running:
            return
        logger.info("Stopping orchestrator")
        self.state.is_running = False

        await self.controller.stop()
        if hasattr(self.source, "stop"):
            await self.source.stop()
        await self.venue.stop()
        if self._price_client is not None:
            await self._price_client.stop()

    async def _on_event(self, event: SignalEvent) -> None:
        """Handle an incoming post."""
        self.state.posts_seen += 1

        if not self.signal_filter.evaluate(event):
            return

        logger.info(f"New post\n\n{event.text}")
        self.state.signals_matched += 1
        self.state.last_signal = event

        if self.on_signal:
            await self.on_signal(event)

        if self.mode == TradingMode.SHADOW:
            logger.info(f"Shadow mode: would buy {self.config.trade.pair_symbol}")
            return

        await self.controller.handle_signal(event)

    async def _on_cycle_finished(self, cycle: TradeCycle) -> None:
        self.state.last_cycle = cycle
        if self.on_cycle:
            await self.on_cycle(cycle)

    def get_stats(self) -> dict:
        """Get orchestrator statistics."""
        return {
            "mode": self.mode,
            "is_running": self.state.is_running,
            "posts_seen": self.state.posts_seen,
            "signals_matched": self.state.signals_matched,
            "controller_stats": self.controller.get_stats(),
            "source_stats": self.source.get_stats_dict() if hasattr(self.source, "get_stats_dict") else {},
        }


async def start_tracking(config: Config, **kwargs) -> None:
    """Build an orchestrator and run it until the source ends."""
    await Orchestrator(config, **kwargs).start_tracking()
