"""Signal filter: decides whether a post should trigger a trade.

A post qualifies when:
1. Trading is enabled and a base asset is configured
2. It comes from the tracked account
3. It is not a reply, unless replies are allowed
4. Its text contains the base asset symbol (case-insensitive substring)
"""

import logging

from ..config import Config
from ..models.types import SignalEvent

logger = logging.getLogger(__name__)


class SignalFilter:
    """Stateless qualifier for inbound posts.

    Matching is plain substring containment, so a symbol that appears inside
    another word ("doge" in "dogecoin") still matches.
    """

    def __init__(self, config: Config):
        self.config = config
        self.tracking_config = config.tracking
        self.trade_config = config.trade

    def evaluate(self, event: SignalEvent) -> bool:
        """Return True if the event should start a trade cycle."""
        if not self.trade_config.enabled or not self.trade_config.base_asset:
            return False

        if str(event.author_id) != str(self.tracking_config.account_id):
            logger.debug(f"Ignoring post from unexpected author {event.author_id}")
            return False

        if event.is_reply and not self.tracking_config.allow_replies:
            logger.debug(f"Ignoring reply {event.post_id}")
            return False

        if not event.text:
            return False

        return self.trade_config.base_asset.lower() in event.text.lower()


def evaluate(event: SignalEvent, config: Config) -> bool:
    """Functional form of SignalFilter.evaluate."""
    return SignalFilter(config).evaluate(event)
