"""Configuration management utilities."""

from dataclasses import dataclass, field
import argparse
import os
from typing import Optional, List


def _channels(value: str) -> List[str]:
    return [c.strip() for c in value.split(",") if c.strip()]


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value in (None, "", "0"):
        return None
    return int(value)


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments or provided list."""
    parser = argparse.ArgumentParser(description="ticker-seeker configuration")
    parser.add_argument(
        "--universe",
        default=os.getenv("UNIVERSE_PATH", "scanner/all_tickers.txt"),
        help="Newline-delimited ticker universe file",
    )
    parser.add_argument(
        "--db-path",
        default=os.getenv("DB_PATH", os.path.expanduser("~/.tickerbot/db.json")),
        help="Path to the JSON mention store",
    )
    parser.add_argument(
        "--channel",
        dest="channels",
        action="append",
        default=None,
        help="Channel id to track (repeatable; env CHANNELS is comma separated)",
    )
    parser.add_argument(
        "--archive",
        default=os.getenv("ARCHIVE_PATH"),
        help="JSONL message export used as the history source",
    )
    parser.add_argument(
        "--lookback-days",
        type=int,
        default=int(os.getenv("LOOKBACK_DAYS", "14")),
        help="Backfill window when a channel has no checkpoint",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=int(os.getenv("PAGE_SIZE", "100")),
        help="History items requested per page",
    )
    parser.add_argument(
        "--backfill-max-items",
        type=int,
        default=_optional_int(os.getenv("BACKFILL_MAX_ITEMS")),
        help="Cap on items replayed per channel per run (default: unbounded)",
    )
    parser.add_argument(
        "--fetch-timeout",
        type=float,
        default=float(os.getenv("FETCH_TIMEOUT", "15")),
        help="Seconds allowed for one history or price fetch",
    )
    parser.add_argument(
        "--price-concurrency",
        type=int,
        default=int(os.getenv("PRICE_CONCURRENCY", "3")),
        help="Maximum price fetches in flight",
    )
    parser.add_argument(
        "--agent-id",
        default=os.getenv("AGENT_ID", ""),
        help="User id of the bot itself",
    )
    parser.add_argument(
        "--agent-handle",
        default=os.getenv("AGENT_HANDLE", "SuperPony"),
        help="Name the bot is addressed by (@handle)",
    )
    parser.add_argument(
        "--reference-tz",
        default=os.getenv("REFERENCE_TZ", "UTC"),
        help="Timezone that defines calendar months for leaderboards",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument(
        "--build-universe",
        action="store_true",
        help="Download the Nasdaq symbol directory into --universe then exit",
    )
    ns = parser.parse_args(args)
    if ns.channels is None:
        ns.channels = _channels(os.getenv("CHANNELS", ""))
    return ns


@dataclass
class BotConfig:
    universe_path: str
    db_path: str
    channels: List[str] = field(default_factory=list)
    archive_path: Optional[str] = None
    lookback_days: int = 14
    page_size: int = 100
    backfill_max_items: Optional[int] = None
    fetch_timeout: float = 15.0
    price_concurrency: int = 3
    agent_id: str = ""
    agent_handle: str = "SuperPony"
    reference_tz: str = "UTC"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    build_universe: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "BotConfig":
        return cls(
            universe_path=args.universe,
            db_path=args.db_path,
            channels=list(args.channels),
            archive_path=args.archive,
            lookback_days=args.lookback_days,
            page_size=args.page_size,
            backfill_max_items=args.backfill_max_items,
            fetch_timeout=args.fetch_timeout,
            price_concurrency=args.price_concurrency,
            agent_id=args.agent_id,
            agent_handle=args.agent_handle,
            reference_tz=args.reference_tz,
            log_level=args.log_level,
            host=args.host,
            port=args.port,
            build_universe=args.build_universe,
        )
