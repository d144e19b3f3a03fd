"""Entry point for the ticker-seeker ingest runner.

This is the lightweight CLI runner used primarily during development: it
loads the ticker universe, replays channel history from a JSONL export
(``--archive``) through the checkpointed backfill and exits.  A chat
connector feeds the same ingestor through
:func:`tickerbot.ingest.consume_live` once the backfill is done.
"""

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent))

import asyncio
import logging
from typing import List, Optional

from tickerbot.chat.archive import JsonlArchive
from tickerbot.errors import PersistenceError, ValidationError
from tickerbot.runtime import build_runtime
from tickerbot.universe import build_universe_file, load_universe
from tickerbot.utils import BotConfig, parse_args

logger = logging.getLogger("tickerbot.main")


async def run(cfg: BotConfig) -> int:
    """Run one backfill pass for every configured channel."""
    universe = load_universe(cfg.universe_path)
    source = JsonlArchive(cfg.archive_path) if cfg.archive_path else None
    if source is None:
        logger.warning("no --archive given; nothing to backfill")
    runtime = build_runtime(cfg, universe, source)
    try:
        reports = await runtime.bootstrap.run()
    finally:
        await runtime.oracle.aclose()
    for report in reports:
        logger.info(
            "channel %s: scanned=%d added=%d completed=%s%s",
            report.channel_id,
            report.scanned,
            report.mentions_added,
            report.completed,
            f" error={report.error}" if report.error else "",
        )
    return 0 if all(r.error is None for r in reports) else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = BotConfig.from_args(args)
    logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.INFO))

    if cfg.build_universe:
        build_universe_file(cfg.universe_path)
        return 0
    try:
        return asyncio.run(run(cfg))
    except ValidationError as exc:
        logger.error("invalid ticker universe: %s", exc)
        return 2
    except PersistenceError as exc:
        logger.error("mention store unavailable: %s", exc)
        return 3


if __name__ == "__main__":
    sys.exit(main())
