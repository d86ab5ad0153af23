"""Command-line interface for mention-trader.

Usage:
    mention-trader run [--mode=MODE] [--config=PATH]
    mention-trader status
    mention-trader version
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .config import load_config, Credentials
from .errors import MentionTraderError
from .orchestrator import Orchestrator, TradingMode


def setup_logging(level: str = "INFO", log_file: str = None) -> None:
    """Configure logging."""
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=handlers,
    )


def cmd_run(args: argparse.Namespace) -> int:
    """Run the tracker."""
    config = load_config(args.config)
    credentials = Credentials.from_env()

    # Determine mode
    mode = args.mode or os.environ.get("TRADING_MODE", TradingMode.PAPER)

    if mode == TradingMode.LIVE and config.trade.enabled and not args.confirm_live:
        print("WARNING: You are about to start LIVE trading with real money!")
        print("Add --confirm-live flag to proceed")
        return 1

    # Setup logging
    log_level = os.environ.get("LOG_LEVEL", "INFO")
    log_file = os.environ.get("LOG_FILE")
    setup_logging(log_level, log_file)

    logger = logging.getLogger(__name__)

    try:
        orchestrator = Orchestrator(config=config, mode=mode, credentials=credentials)
    except MentionTraderError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    logger.info(f"Starting mention-trader in {mode} mode")

    try:
        asyncio.run(orchestrator.start_tracking())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except MentionTraderError as e:
        logger.error(f"Tracking stopped: {e}")
        return 1

    # Print final stats
    stats = orchestrator.get_stats()
    ctl = stats["controller_stats"]
    print("\nFinal Statistics:")
    print(f"  Posts seen: {stats['posts_seen']}")
    print(f"  Signals matched: {stats['signals_matched']}")
    print(f"  Cycles closed: {ctl['cycles_closed']}")
    print(f"  Cycles aborted: {ctl['cycles_aborted']}")

    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show configuration status."""
    print("Mention Trader Status")
    print("=" * 40)
    print("\nConfiguration:")

    config = load_config(args.config)
    trade = config.trade
    print(f"  Account: {config.tracking.account_id or '(unset)'}")
    print(f"  Allow replies: {config.tracking.allow_replies}")
    print(f"  Trading enabled: {trade.enabled}")
    print(f"  Pair: {trade.pair_symbol}")
    print(f"  Balance per trade: {trade.balance_percentage:.0%}")
    print(f"  Sell after: {trade.time_to_sell_minutes} min")

    try:
        config.validate()
    except MentionTraderError as e:
        print(f"\nConfig invalid: {e}")
        return 1

    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    from . import __version__
    print(f"mention-trader version {__version__}")
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="mention-trader",
        description="Buy an asset when an account mentions it, sell it a few minutes later",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to config file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Track the account and trade")
    run_parser.add_argument(
        "--mode", "-m",
        choices=["paper", "live", "shadow"],
        default=None,
        help="Trading mode (default: paper)",
    )
    run_parser.add_argument(
        "--confirm-live",
        action="store_true",
        help="Confirm live trading (required for live mode)",
    )
    run_parser.set_defaults(func=cmd_run)

    # status command
    status_parser = subparsers.add_parser("status", help="Show configuration status")
    status_parser.set_defaults(func=cmd_status)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
