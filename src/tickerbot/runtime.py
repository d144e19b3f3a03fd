"""Object graph shared by the CLI runner and the API server."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from .bootstrap import BootstrapCoordinator
from .chat import HistorySource, TimestampToCursor
from .chat.snowflake import snowflake_from_timestamp
from .ingest import BackfillController, MentionIngestor
from .oracle import PriceOracle, YahooChartOracle
from .persistence import MentionStore
from .ranking import Ranker
from .service import CommandService, Publisher
from .universe import TickerUniverse
from .utils import BotConfig


@dataclass
class Runtime:
    universe: TickerUniverse
    store: MentionStore
    publisher: Publisher
    ingestor: MentionIngestor
    bootstrap: BootstrapCoordinator
    oracle: PriceOracle
    commands: CommandService


def build_runtime(
    cfg: BotConfig,
    universe: TickerUniverse,
    source: Optional[HistorySource],
    oracle: Optional[PriceOracle] = None,
    timestamp_to_cursor: TimestampToCursor = snowflake_from_timestamp,
) -> Runtime:
    """Wire the components for ``cfg``.

    Without a history ``source`` no channel is backfilled and the bootstrap
    coordinator is ready as soon as it runs.
    """
    store = MentionStore(cfg.db_path)
    publisher = Publisher()
    ingestor = MentionIngestor(
        store,
        universe,
        agent_id=cfg.agent_id,
        agent_handle=cfg.agent_handle,
        publisher=publisher,
    )
    controllers = []
    if source is not None:
        controllers = [
            BackfillController(
                channel_id,
                ingestor,
                source,
                timestamp_to_cursor,
                lookback=timedelta(days=cfg.lookback_days),
                page_size=cfg.page_size,
                max_items=cfg.backfill_max_items,
                fetch_timeout=cfg.fetch_timeout,
            )
            for channel_id in cfg.channels
        ]
    oracle = oracle or YahooChartOracle(timeout=cfg.fetch_timeout)
    ranker = Ranker(oracle, concurrency=cfg.price_concurrency, timeout=cfg.fetch_timeout)
    commands = CommandService(store, ranker, tz=ZoneInfo(cfg.reference_tz))
    return Runtime(
        universe=universe,
        store=store,
        publisher=publisher,
        ingestor=ingestor,
        bootstrap=BootstrapCoordinator(controllers),
        oracle=oracle,
        commands=commands,
    )
