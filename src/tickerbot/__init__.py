"""Ticker mention tracking for community chat channels.

Messages flow through :mod:`tickerbot.ingest` (live stream and checkpointed
backfill) into the JSON mention store in :mod:`tickerbot.persistence`.
:mod:`tickerbot.aggregate` and :mod:`tickerbot.ranking` compute the
month-to-date leaderboard and price-performance views on demand.
"""

from .errors import (
    NotFoundError,
    PersistenceError,
    TickerBotError,
    TransientFetchError,
    ValidationError,
)
from .extract import extract_tickers
from .universe import TickerUniverse, load_universe

__all__ = [
    "NotFoundError",
    "PersistenceError",
    "TickerBotError",
    "TransientFetchError",
    "ValidationError",
    "TickerUniverse",
    "extract_tickers",
    "load_universe",
]
