"""Tests for the post stream sources."""

import asyncio
import json

import pytest
from conftest import TRACKED_ID
from mention_trader.errors import NetworkError
from mention_trader.models.types import SignalEvent
from mention_trader.services.stream import (
    MockSignalSource,
    TwitterStreamSource,
    parse_tweet,
)


class TestParseTweet:
    """Tests for v2 tweet parsing."""

    def test_plain_tweet(self):
        event = parse_tweet({"id": "10", "text": "Doge!", "author_id": TRACKED_ID})
        assert event == SignalEvent(author_id=TRACKED_ID, text="Doge!", is_reply=False, post_id="10")

    def test_reply_by_reference(self):
        event = parse_tweet({
            "id": "11",
            "text": "@someone doge",
            "author_id": TRACKED_ID,
            "referenced_tweets": [{"type": "replied_to", "id": "9"}],
        })
        assert event.is_reply is True

    def test_reply_by_user(self):
        event = parse_tweet({"id": "12", "text": "hi", "author_id": "1", "in_reply_to_user_id": "2"})
        assert event.is_reply is True

    def test_quote_is_not_reply(self):
        event = parse_tweet({
            "id": "13",
            "text": "look",
            "author_id": "1",
            "referenced_tweets": [{"type": "quoted", "id": "9"}],
        })
        assert event.is_reply is False

    def test_numeric_author(self):
        event = parse_tweet({"id": "14", "text": "x", "author_id": 44196397})
        assert event.author_id == "44196397"


class TestStreamLines:
    """Tests for line handling on the filtered stream."""

    @pytest.fixture
    def source(self, sample_config):
        return TwitterStreamSource(sample_config, "token")

    def test_keepalive(self, source):
        assert source._handle_line(b"\r\n") is None
        assert source.stats.keepalives == 1

    def test_tweet_line(self, source):
        line = json.dumps({"data": {"id": "1", "text": "doge", "author_id": TRACKED_ID}}).encode()
        event = source._handle_line(line + b"\r\n")
        assert event.text == "doge"
        assert source.stats.posts_received == 1
        assert source.stats.last_post_ts is not None

    def test_garbage_line(self, source):
        assert source._handle_line(b"{not json") is None
        assert source.stats.errors == 1

    def test_error_payload(self, source):
        line = json.dumps({"errors": [{"title": "ConnectionException"}]}).encode()
        assert source._handle_line(line) is None
        assert source.stats.errors == 1

    def test_rule_and_headers(self, source):
        assert source.rule_value == f"from:{TRACKED_ID}"
        assert source.headers == {"Authorization": "Bearer token"}

    def test_stats_dict(self, source):
        stats = source.get_stats_dict()
        assert stats["posts_received"] == 0
        assert stats["reconnections"] == 0

    def test_rule_failure_reconnects(self, source, sample_event):
        attempts = []

        async def flaky_rule(session):
            attempts.append(session)
            if len(attempts) == 1:
                raise NetworkError("Listing stream rules failed (503)")

        async def one_post(session):
            yield sample_event

        source._ensure_rule = flaky_rule
        source._stream = one_post
        source._reconnect_delay = 0

        async def scenario():
            events = source.events()
            event = await events.__anext__()
            await source.stop()
            await events.aclose()
            return event

        assert asyncio.run(scenario()) == sample_event
        assert len(attempts) == 2
        assert source.stats.reconnections == 1
        assert source.stats.errors == 1


class TestMockSignalSource:
    """Tests for the in-memory source."""

    def test_yields_in_order(self, sample_event):
        other = SignalEvent(author_id="1", text="b")
        source = MockSignalSource([sample_event, other])

        async def collect():
            return [e async for e in source]

        assert asyncio.run(collect()) == [sample_event, other]
        assert source.get_stats_dict() == {"posts_received": 2}

    def test_feed_then_close(self, sample_event):
        async def scenario():
            source = MockSignalSource(close_when_drained=False)
            await source.feed(sample_event)
            await source.close()
            return [e async for e in source]

        assert asyncio.run(scenario()) == [sample_event]
