"""Pytest configuration and fixtures."""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add the python package to the path
PACKAGE_DIR = Path(__file__).parent.parent / "python"
sys.path.insert(0, str(PACKAGE_DIR))

from mention_trader.config import Config, TrackingConfig, TradeConfig
from mention_trader.errors import AssetNotFound, PriceUnavailable
from mention_trader.models.types import Fill, OrderResult, OrderSide, SignalEvent

TRACKED_ID = "44196397"


class FakeVenue:
    """Scripted venue that records every call."""

    def __init__(self, prices=None, balances=None):
        self.prices = {k: Decimal(str(v)) for k, v in (prices or {}).items()}
        self.balances = {k: Decimal(str(v)) for k, v in (balances or {}).items()}
        self.fills: list = []
        self.orders: list = []
        self.errors: dict = {}

    def queue_fills(self, *fills: Fill) -> None:
        self.fills.append(list(fills))

    async def get_price(self, pair_symbol):
        if "price" in self.errors:
            raise self.errors["price"]
        if pair_symbol not in self.prices:
            raise PriceUnavailable(pair_symbol)
        return self.prices[pair_symbol]

    async def get_free_balance(self, asset):
        if asset not in self.balances:
            raise AssetNotFound(asset)
        return self.balances[asset]

    async def submit_market_order(self, pair_symbol, side, quantity):
        self.orders.append((pair_symbol, side, quantity))
        if "order" in self.errors:
            raise self.errors["order"]
        fills = self.fills.pop(0) if self.fills else []
        return OrderResult(
            original_quantity=quantity,
            symbol=pair_symbol,
            side=side,
            fills=tuple(fills),
        )

    async def start(self):
        pass

    async def stop(self):
        pass


class FakeResponse:
    """Canned HTTP response; an exception payload is raised from json()."""

    def __init__(self, status, payload):
        self.status = status
        self._payload = payload

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Records requests and replays canned responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, headers=None):
        self.requests.append((method, url, headers))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        pass


class RecordingSleep:
    """Stand-in for asyncio.sleep that returns at once."""

    def __init__(self):
        self.calls: list = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(0)


def make_fill(price, qty, commission="0", asset="DOGE") -> Fill:
    return Fill(
        price=Decimal(str(price)),
        quantity=Decimal(str(qty)),
        commission_amount=Decimal(str(commission)),
        commission_asset=asset,
    )


@pytest.fixture
def sample_config() -> Config:
    """DOGE/USDT, half the balance, sell after five minutes."""
    return Config(
        tracking=TrackingConfig(account_id=TRACKED_ID),
        trade=TradeConfig(
            enabled=True,
            balance_percentage=0.5,
            time_to_sell_minutes=5,
            base_asset="DOGE",
            quote_asset="USDT",
        ),
    )


@pytest.fixture
def sample_event() -> SignalEvent:
    return SignalEvent(author_id=TRACKED_ID, text="doge to the moon", is_reply=False, post_id="1")


@pytest.fixture
def fake_venue() -> FakeVenue:
    return FakeVenue(prices={"DOGEUSDT": "0.10"}, balances={"USDT": "100"})


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()
