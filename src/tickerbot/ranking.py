"""Price-performance ranking of mentioned tickers.

Each item carries an anchor instant.  The baseline price is read from the
daily candle of the anchor's calendar day in the ticker's exchange timezone
(or the first trading day after it), the end price from the latest candle.
Fetches run with at most ``concurrency`` requests in flight.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional, Sequence
from zoneinfo import ZoneInfo

from prometheus_client import Counter

from .oracle import DailyPoint, PriceOracle, PriceSeries

logger = logging.getLogger(__name__)

RANK_DROPS = Counter("rank_drops", "Tickers dropped from a ranking", ["reason"])


class PriceField(str, enum.Enum):
    OPEN = "open"
    CLOSE = "close"
    ADJ_CLOSE = "adjclose"

    def read(self, point: DailyPoint) -> Optional[float]:
        if self is PriceField.OPEN:
            return point.open
        if self is PriceField.ADJ_CLOSE:
            return point.adj_close
        return point.close


@dataclass(frozen=True)
class RankItem:
    ticker: str
    anchor: datetime
    provenance: Any = None


@dataclass(frozen=True)
class RankedResult:
    ticker: str
    start_price: float
    end_price: float
    pct_change: float
    provenance: Any = None


def anchor_index(series: PriceSeries, anchor: datetime) -> Optional[int]:
    """Index of the candle for ``anchor``'s exchange-local day, or the next one."""
    day: date = anchor.astimezone(ZoneInfo(series.exchange_timezone)).date()
    for i, point in enumerate(series.points):
        if point.trading_day >= day:
            return i
    return None


def start_price(series: PriceSeries, anchor: datetime, field: PriceField) -> Optional[float]:
    i = anchor_index(series, anchor)
    if i is None:
        return None
    # holiday/halt candles can be null; take the next populated one
    for point in series.points[i:]:
        value = field.read(point)
        if value is not None:
            return value
    return None


def end_price(series: PriceSeries, field: PriceField) -> Optional[float]:
    for point in reversed(series.points):
        value = field.read(point)
        if value is not None:
            return value
    return None


class Ranker:
    """Rank tickers by percentage change from their anchor to the latest close."""

    def __init__(
        self,
        oracle: PriceOracle,
        concurrency: int = 3,
        start_field: PriceField = PriceField.OPEN,
        end_field: PriceField = PriceField.CLOSE,
        timeout: float = 15.0,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.oracle = oracle
        self.concurrency = concurrency
        self.start_field = start_field
        self.end_field = end_field
        self.timeout = timeout

    async def _rank_one(self, item: RankItem, sem: asyncio.Semaphore) -> Optional[RankedResult]:
        async with sem:
            try:
                series = await asyncio.wait_for(
                    self.oracle.daily_series(item.ticker, item.anchor), timeout=self.timeout
                )
            except Exception as exc:
                RANK_DROPS.labels("fetch").inc()
                logger.debug("dropping %s: price fetch failed: %s", item.ticker, exc)
                return None
        if not series.points:
            RANK_DROPS.labels("empty").inc()
            logger.debug("dropping %s: empty series", item.ticker)
            return None
        try:
            start = start_price(series, item.anchor, self.start_field)
        except (KeyError, ValueError) as exc:
            RANK_DROPS.labels("timezone").inc()
            logger.debug("dropping %s: bad exchange timezone: %s", item.ticker, exc)
            return None
        end = end_price(series, self.end_field)
        if start is None or end is None or start <= 0 or end <= 0:
            RANK_DROPS.labels("price").inc()
            logger.debug("dropping %s: unusable prices start=%s end=%s", item.ticker, start, end)
            return None
        return RankedResult(
            ticker=item.ticker,
            start_price=start,
            end_price=end,
            pct_change=(end - start) / start * 100,
            provenance=item.provenance,
        )

    async def rank(self, items: Sequence[RankItem]) -> List[RankedResult]:
        """Return the rankable items sorted by ``pct_change`` descending.

        Equal percentages keep their input order.
        """
        sem = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(*(self._rank_one(item, sem) for item in items))
        ranked = [r for r in results if r is not None]
        ranked.sort(key=lambda r: r.pct_change, reverse=True)
        return ranked
