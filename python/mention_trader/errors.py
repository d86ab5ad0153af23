"""Exception hierarchy for the mention-trader system."""


class MentionTraderError(Exception):
    """Base class for all mention-trader errors."""


class ConfigurationError(MentionTraderError):
    """Missing credentials or invalid configuration. Fatal at startup."""


class TradeCycleError(MentionTraderError):
    """A failure that aborts the current trade cycle only."""


class InsufficientBalance(TradeCycleError):
    """Free balance is below the minimum tradeable value."""


class EmptyFillSet(TradeCycleError):
    """An order came back without any fills."""


class AssetNotFound(TradeCycleError):
    """The account holds no balance row for the asset."""


class PriceUnavailable(TradeCycleError):
    """The venue did not return a price for the pair."""


class OrderRejected(TradeCycleError):
    """The venue refused the order."""


class NetworkError(TradeCycleError):
    """Transport-level failure talking to a collaborator."""


class DivisionByZero(TradeCycleError, ZeroDivisionError):
    """Profit requested against a zero cost basis."""
