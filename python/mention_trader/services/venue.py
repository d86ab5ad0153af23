"""Trading venue adapters.

Handles:
- Spot price lookup
- Free balance lookup
- Market order placement with full fill reports

BinanceSpotClient talks to the real REST API; PaperVenue simulates it.
"""

import asyncio
import hashlib
import hmac
import logging
import time
from decimal import Decimal
from typing import Any, Dict, Optional, Type
from urllib.parse import urlencode
import aiohttp

from ..config import Config
from ..errors import (
    AssetNotFound,
    NetworkError,
    OrderRejected,
    PriceUnavailable,
    TradeCycleError,
)
from ..models.types import Fill, OrderResult, OrderSide
from .accounting import to_decimal

logger = logging.getLogger(__name__)


def format_quantity(quantity: Decimal) -> str:
    """Render a Decimal without exponent notation."""
    return format(to_decimal(quantity).normalize(), "f")


class BinanceSpotClient:
    """Binance spot REST client.

    Implements the price, balance and order collaborator interfaces.
    Failures are mapped onto the trade cycle error taxonomy and never retried.
    """

    def __init__(
        self,
        config: Config,
        api_key: str,
        api_secret: str,
    ):
        self.config = config
        self.venue_config = config.venue
        self.api_key = api_key
        self.api_secret = api_secret

        # Session for API calls
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def base_url(self) -> str:
        """Get API base URL."""
        return self.venue_config.url

    async def start(self) -> None:
        """Start the client."""
        timeout = aiohttp.ClientTimeout(total=self.venue_config.request_timeout_s)
        self._session = aiohttp.ClientSession(timeout=timeout)
        logger.info(f"Binance client started ({self.base_url})")

    async def stop(self) -> None:
        """Stop the client."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get_price(self, pair_symbol: str) -> Decimal:
        """Get the last traded price for a pair."""
        result = await self._request(
            "GET",
            "/api/v3/ticker/price",
            {"symbol": pair_symbol},
            signed=False,
            error_cls=PriceUnavailable,
        )
        price = result.get("price")
        if price is None:
            raise PriceUnavailable(f"No price returned for {pair_symbol}")
        try:
            return to_decimal(price)
        except ArithmeticError as e:
            raise PriceUnavailable(f"Unreadable price for {pair_symbol}: {price!r}") from e

    async def get_free_balance(self, asset: str) -> Decimal:
        """Get the free balance for one asset."""
        result = await self._request(
            "GET",
            "/api/v3/account",
            {},
            signed=True,
            error_cls=AssetNotFound,
        )
        for row in result.get("balances", []):
            if row.get("asset") == asset:
                try:
                    return to_decimal(row.get("free", "0"))
                except ArithmeticError as e:
                    raise AssetNotFound(f"Unreadable {asset} balance: {row!r}") from e
        raise AssetNotFound(f"No {asset} balance on the account")

    async def submit_market_order(
        self,
        pair_symbol: str,
        side: OrderSide,
        quantity: Decimal,
    ) -> OrderResult:
        """Place a market order and return its fills."""
        params = {
            "symbol": pair_symbol,
            "side": side.value,
            "type": "MARKET",
            "quantity": format_quantity(quantity),
            "newOrderRespType": "FULL",
        }
        result = await self._request(
            "POST",
            "/api/v3/order",
            params,
            signed=True,
            error_cls=OrderRejected,
        )
        try:
            return parse_order(result, side)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise OrderRejected(f"Unreadable order response for {pair_symbol}: {e!r}") from e

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Dict[str, Any],
        signed: bool,
        error_cls: Type[TradeCycleError],
    ) -> Dict[str, Any]:
        """Make an API request, signing it when required."""
        if not self._session:
            raise RuntimeError("Client not started")

        params = dict(params)
        headers = {}
        if signed:
            params["recvWindow"] = self.venue_config.recv_window_ms
            params["timestamp"] = int(time.time() * 1000)
            query_string = urlencode(params)
            params["signature"] = sign(self.api_secret, query_string)
            headers["X-MBX-APIKEY"] = self.api_key

        url = f"{self.base_url}{endpoint}?{urlencode(params)}"

        try:
            async with self._session.request(method, url, headers=headers) as resp:
                status = resp.status
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"{method} {endpoint} failed: {e}") from e
        except ValueError as e:
            # Gateways answer with HTML pages on 5xx
            raise NetworkError(f"{method} {endpoint} returned a non-JSON body: {e}") from e

        if status >= 400 or (isinstance(payload, dict) and payload.get("code", 0) < 0):
            msg = payload.get("msg") if isinstance(payload, dict) else payload
            raise error_cls(f"{endpoint} returned {status}: {msg}")

        return payload


def sign(secret: str, query_string: str) -> str:
    """HMAC-SHA256 signature of a query string."""
    return hmac.new(
        secret.encode(),
        query_string.encode(),
        hashlib.sha256
    ).hexdigest()


def parse_order(data: dict, side: OrderSide) -> OrderResult:
    """Parse a FULL order response.

    Binance order format:
    {
        "symbol": "DOGEUSDT",
        "orderId": 28,
        "origQty": "500.00000000",
        "fills": [{"price": "0.1", "qty": "500", "commission": "0.5", "commissionAsset": "DOGE"}]
    }
    """
    return OrderResult(
        original_quantity=to_decimal(data.get("origQty", "0")),
        symbol=data.get("symbol", ""),
        side=side,
        fills=tuple(Fill.from_venue(f) for f in data.get("fills") or []),
        order_id=str(data["orderId"]) if "orderId" in data else None,
    )


class PaperVenue:
    """Paper trading venue for simulation.

    Holds balances and prices in memory and fills market orders in full at
    the current price. Commission is charged in the asset received.
    """

    def __init__(
        self,
        config: Config,
        balances: Optional[Dict[str, Any]] = None,
        prices: Optional[Dict[str, Any]] = None,
        price_source: Optional[Any] = None,
    ):
        self.config = config
        self.trade_config = config.trade
        self.commission_rate = to_decimal(config.venue.paper_commission_rate)

        self.balances: Dict[str, Decimal] = {
            k: to_decimal(v) for k, v in (balances or {}).items()
        }
        self.prices: Dict[str, Decimal] = {
            k: to_decimal(v) for k, v in (prices or {}).items()
        }
        # Live oracle used when no fixed paper price is set
        self.price_source = price_source
        self.orders: list = []
        self._next_order_id = 1

    async def start(self) -> None:
        """Start the venue."""
        logger.info("Paper venue started")

    async def stop(self) -> None:
        """Stop the venue."""
        pass

    def set_price(self, pair_symbol: str, price: Any) -> None:
        self.prices[pair_symbol] = to_decimal(price)

    async def get_price(self, pair_symbol: str) -> Decimal:
        if pair_symbol not in self.prices:
            if self.price_source is not None:
                return await self.price_source.get_price(pair_symbol)
            raise PriceUnavailable(f"No paper price for {pair_symbol}")
        return self.prices[pair_symbol]

    async def get_free_balance(self, asset: str) -> Decimal:
        if asset not in self.balances:
            raise AssetNotFound(f"No {asset} balance on the paper account")
        return self.balances[asset]

    async def submit_market_order(
        self,
        pair_symbol: str,
        side: OrderSide,
        quantity: Decimal,
    ) -> OrderResult:
        """Simulate a market order."""
        base = self.trade_config.base_asset
        quote = self.trade_config.quote_asset
        price = await self.get_price(pair_symbol)
        quantity = to_decimal(quantity)
        notional = price * quantity

        if side == OrderSide.BUY:
            if self.balances.get(quote, Decimal("0")) < notional:
                raise OrderRejected(f"Account has insufficient {quote} balance")
            commission = quantity * self.commission_rate
            commission_asset = base
            self.balances[quote] -= notional
            self.balances[base] = self.balances.get(base, Decimal("0")) + quantity - commission
        else:
            if self.balances.get(base, Decimal("0")) < quantity:
                raise OrderRejected(f"Account has insufficient {base} balance")
            commission = notional * self.commission_rate
            commission_asset = quote
            self.balances[base] -= quantity
            self.balances[quote] = self.balances.get(quote, Decimal("0")) + notional - commission

        order = OrderResult(
            original_quantity=quantity,
            symbol=pair_symbol,
            side=side,
            fills=(Fill(price, quantity, commission, commission_asset),),
            order_id=str(self._next_order_id),
        )
        self._next_order_id += 1
        self.orders.append(order)
        return order
