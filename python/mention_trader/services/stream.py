"""Streaming source of posts from the tracked account.

Connects to the Twitter v2 filtered stream, makes sure a `from:<account>`
rule is installed and turns each delivered tweet into a SignalEvent.
Events are exposed as an async iterator in arrival order.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Optional
import aiohttp

from ..config import Config
from ..errors import NetworkError
from ..models.types import SignalEvent, current_ts_ms

logger = logging.getLogger(__name__)

RULE_TAG = "mention-trader"
_SENTINEL = object()


@dataclass
class StreamStats:
    """Statistics for the stream reader."""
    posts_received: int = 0
    keepalives: int = 0
    reconnections: int = 0
    errors: int = 0
    last_post_ts: Optional[int] = None


class TwitterStreamSource:
    """Filtered-stream reader for a single account.

    Usage:
        source = TwitterStreamSource(config, bearer_token)
        async for event in source:
            ...
    """

    def __init__(self, config: Config, bearer_token: str):
        self.config = config
        self.tracking_config = config.tracking
        self.account_id = str(config.tracking.account_id)
        self.bearer_token = bearer_token

        self._session: Optional[aiohttp.ClientSession] = None
        self._running = False
        self._rule_installed = False
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 60.0

        self.stats = StreamStats()

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.bearer_token}"}

    @property
    def rule_value(self) -> str:
        return f"from:{self.account_id}"

    def __aiter__(self) -> AsyncIterator[SignalEvent]:
        return self.events()

    async def events(self) -> AsyncIterator[SignalEvent]:
        """Yield events until stop() is called, reconnecting on drops."""
        self._running = True
        logger.info(f"Tracking account {self.account_id}...")

        async with aiohttp.ClientSession(headers=self.headers) as session:
            self._session = session
            while self._running:
                try:
                    if not self._rule_installed:
                        await self._ensure_rule(session)
                        self._rule_installed = True
                    async for event in self._stream(session):
                        yield event
                except aiohttp.ClientError as e:
                    logger.warning(f"Stream connection lost: {e}")
                    self.stats.reconnections += 1
                except asyncio.TimeoutError:
                    logger.warning("Stream timed out")
                    self.stats.reconnections += 1
                except NetworkError as e:
                    logger.warning(f"Stream setup failed: {e}")
                    self.stats.errors += 1
                    self.stats.reconnections += 1

                if self._running:
                    logger.info(f"Reconnecting in {self._reconnect_delay}s...")
                    await asyncio.sleep(self._reconnect_delay)
                    # Exponential backoff
                    self._reconnect_delay = min(
                        self._reconnect_delay * 2,
                        self._max_reconnect_delay
                    )

        self._session = None

    async def stop(self) -> None:
        """Stop the reader after the current line."""
        self._running = False

    async def _ensure_rule(self, session: aiohttp.ClientSession) -> None:
        """Install the follow rule unless it is already present."""
        url = self.tracking_config.rules_url
        try:
            async with session.get(url) as resp:
                payload = await resp.json()
                if resp.status != 200:
                    raise NetworkError(f"Listing stream rules failed ({resp.status}): {payload}")

            existing = {r.get("value") for r in payload.get("data") or []}
            if self.rule_value in existing:
                return

            body = {"add": [{"value": self.rule_value, "tag": RULE_TAG}]}
            async with session.post(url, json=body) as resp:
                payload = await resp.json()
                if resp.status not in (200, 201):
                    raise NetworkError(f"Adding stream rule failed ({resp.status}): {payload}")
            logger.info(f"Installed stream rule {self.rule_value}")

        except (aiohttp.ClientError, ValueError) as e:
            raise NetworkError(f"Stream rules request failed: {e}") from e

    async def _stream(self, session: aiohttp.ClientSession) -> AsyncIterator[SignalEvent]:
        """Read newline-delimited tweets from one connection."""
        params = {
            "tweet.fields": "author_id,referenced_tweets,in_reply_to_user_id",
        }
        timeout = aiohttp.ClientTimeout(total=None, sock_read=90)

        async with session.get(self.tracking_config.stream_url, params=params, timeout=timeout) as resp:
            if resp.status != 200:
                body = await resp.text()
                raise aiohttp.ClientResponseError(
                    resp.request_info,
                    resp.history,
                    status=resp.status,
                    message=body[:200],
                )

            logger.info(f"Connected to {self.tracking_config.stream_url}")
            self._reconnect_delay = 1.0

            async for raw_line in resp.content:
                if not self._running:
                    return
                event = self._handle_line(raw_line)
                if event is not None:
                    yield event

    def _handle_line(self, raw_line: bytes) -> Optional[SignalEvent]:
        """Parse one stream line. Blank lines are keep-alives."""
        line = raw_line.strip()
        if not line:
            self.stats.keepalives += 1
            return None

        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse stream line: {line[:100]!r}")
            self.stats.errors += 1
            return None

        if "data" not in msg:
            if "errors" in msg:
                logger.warning(f"Stream error payload: {msg['errors']}")
                self.stats.errors += 1
            return None

        event = parse_tweet(msg["data"])
        self.stats.posts_received += 1
        self.stats.last_post_ts = current_ts_ms()
        return event

    def get_stats_dict(self) -> dict:
        """Get stats as dictionary."""
        return {
            "posts_received": self.stats.posts_received,
            "keepalives": self.stats.keepalives,
            "reconnections": self.stats.reconnections,
            "errors": self.stats.errors,
            "last_post_ts": self.stats.last_post_ts,
        }


def parse_tweet(data: dict) -> SignalEvent:
    """Parse a v2 tweet object into a SignalEvent.

    Tweet format:
    {
        "id": "1389",
        "text": "doge to the moon",
        "author_id": "44196397",
        "in_reply_to_user_id": "123",          # replies only
        "referenced_tweets": [{"type": "replied_to", "id": "1388"}]
    }
    """
    referenced = data.get("referenced_tweets") or []
    is_reply = bool(data.get("in_reply_to_user_id")) or any(
        ref.get("type") == "replied_to" for ref in referenced
    )
    return SignalEvent(
        author_id=str(data.get("author_id", "")),
        text=data.get("text") or "",
        is_reply=is_reply,
        post_id=data.get("id"),
    )


class MockSignalSource:
    """In-memory source for testing and paper runs.

    Events can be given up front or fed later; close() ends iteration.
    """

    def __init__(self, events: Iterable[SignalEvent] = (), close_when_drained: bool = True):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.stats = StreamStats()
        for event in events:
            self._queue.put_nowait(event)
        if close_when_drained:
            self._queue.put_nowait(_SENTINEL)

    async def feed(self, event: SignalEvent) -> None:
        """Feed an event to the pipeline."""
        await self._queue.put(event)

    async def close(self) -> None:
        await self._queue.put(_SENTINEL)

    async def stop(self) -> None:
        await self.close()

    def __aiter__(self) -> AsyncIterator[SignalEvent]:
        return self.events()

    async def events(self) -> AsyncIterator[SignalEvent]:
        while True:
            item = await self._queue.get()
            if item is _SENTINEL:
                return
            self.stats.posts_received += 1
            self.stats.last_post_ts = current_ts_ms()
            yield item

    def get_stats_dict(self) -> dict:
        return {"posts_received": self.stats.posts_received}
