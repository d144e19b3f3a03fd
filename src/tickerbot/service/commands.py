"""Command-surface operations over the mention store.

Each method maps one user-facing request ("all tracked tickers", "my
tickers", "this month's leaderboard", "hot-N gainers", the dashboard) onto
aggregator and ranker calls against a fresh store snapshot.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, List, Optional

from ..aggregate import (
    AggregatedTickerStat,
    Period,
    TickerTotal,
    UserFirstMentions,
    aggregate,
    first_mention_leaders,
    ticker_totals,
)
from ..persistence import MentionStore
from ..ranking import RankedResult, Ranker, RankItem

logger = logging.getLogger(__name__)


class BaselineMode(str, enum.Enum):
    """Where a gainers ranking measures from.

    ``month`` anchors every ticker at the start of the month, ``mention`` at
    the ticker's first mention this month.  The price fields come from the
    ranker (open at the anchor, latest close by default).
    """

    MONTH = "month"
    MENTION = "mention"


@dataclass(frozen=True)
class TickerListing:
    items: List[TickerTotal]
    unique: int
    total: int


@dataclass(frozen=True)
class Leaderboard:
    period: Period
    stats: List[AggregatedTickerStat]
    first_mentions: List[UserFirstMentions]


@dataclass(frozen=True)
class Dashboard:
    total_tracked: int
    month_unique: int
    top_tickers: List[str]
    top_posters: List[str]
    top_gainers: List[str]


class CommandService:
    def __init__(
        self,
        store: MentionStore,
        ranker: Ranker,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ) -> None:
        self.store = store
        self.ranker = ranker
        self.tz = tz
        self.clock = clock

    async def _entries(self):
        snapshot = await asyncio.to_thread(self.store.load_all)
        return snapshot.entries

    async def all_tickers(self, min_mentions: int = 1) -> TickerListing:
        entries = await self._entries()
        items = ticker_totals(entries, min_mentions=min_mentions)
        return TickerListing(items=items, unique=len(items), total=len(entries))

    async def my_tickers(self, user_id: str, since: Optional[datetime] = None) -> TickerListing:
        entries = await self._entries()
        items = ticker_totals(entries, user_id=user_id, since=since)
        return TickerListing(items=items, unique=len(items), total=sum(i.count for i in items))

    async def leaderboard(self, now: Optional[datetime] = None) -> Leaderboard:
        period = Period.month_to_date(now or self.clock(), self.tz)
        stats = aggregate(await self._entries(), period)
        return Leaderboard(period=period, stats=stats, first_mentions=first_mention_leaders(stats))

    async def hot_gainers(
        self,
        top: int = 5,
        mode: BaselineMode = BaselineMode.MONTH,
        user_id: Optional[str] = None,
        limit_tickers: int = 200,
        now: Optional[datetime] = None,
    ) -> List[RankedResult]:
        """Rank this month's tickers by price change and return the best ``top``.

        With ``user_id`` only tickers whose first mention this month belongs
        to that user are ranked.
        """
        board = await self.leaderboard(now)
        stats = board.stats
        if user_id is not None:
            stats = [s for s in stats if s.first_mention.user_id == user_id]
        items = [
            RankItem(
                ticker=s.ticker,
                anchor=board.period.start if mode is BaselineMode.MONTH else s.first_mention.timestamp,
                provenance=s.first_mention,
            )
            for s in stats[:limit_tickers]
        ]
        ranked = await self.ranker.rank(items)
        logger.debug("ranked %d of %d ticker(s) (%s baseline)", len(ranked), len(items), mode.value)
        return ranked[:top] if top > 0 else ranked

    async def dashboard(self, now: Optional[datetime] = None) -> Dashboard:
        entries = await self._entries()
        board = await self.leaderboard(now)
        gainers = await self.hot_gainers(top=3, limit_tickers=25, now=now)
        return Dashboard(
            total_tracked=len({e.ticker.upper() for e in entries}),
            month_unique=len(board.stats),
            top_tickers=[s.ticker for s in board.stats[:10]],
            top_posters=[u.user_name or "Unknown" for u in board.first_mentions[:3]],
            top_gainers=[g.ticker for g in gainers],
        )
