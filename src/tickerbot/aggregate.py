"""Pure reducers over the mention log.

Periods are half-open ``[start, end)`` intervals of timezone-aware instants.
The calendar boundaries of a period (e.g. "this month") are computed in the
period's reference timezone, never in the process's local timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from typing import Dict, Iterable, List, Optional

from .persistence import MentionRecord


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("period bounds must be timezone-aware")

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end

    @classmethod
    def calendar_month(cls, year: int, month: int, tz: tzinfo) -> "Period":
        start = datetime.combine(date(year, month, 1), time(), tzinfo=tz)
        nxt = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return cls(start, datetime.combine(nxt, time(), tzinfo=tz))

    @classmethod
    def month_to_date(cls, now: datetime, tz: tzinfo) -> "Period":
        """From the first day of ``now``'s month in ``tz`` up to ``now``."""
        local = now.astimezone(tz)
        start = datetime.combine(local.date().replace(day=1), time(), tzinfo=tz)
        return cls(start, now)


@dataclass(frozen=True)
class FirstMention:
    user_id: str
    user_name: str
    timestamp: datetime
    permalink: str


@dataclass(frozen=True)
class LastMention:
    timestamp: datetime
    permalink: str


@dataclass(frozen=True)
class AggregatedTickerStat:
    ticker: str
    period_start: Optional[datetime]
    period_end: Optional[datetime]
    mention_count: int
    first_mention: FirstMention
    last_mention: LastMention


@dataclass(frozen=True)
class UserFirstMentions:
    user_id: str
    user_name: str
    count: int


@dataclass(frozen=True)
class TickerTotal:
    ticker: str
    count: int
    last_timestamp: datetime


def aggregate(
    records: Iterable[MentionRecord],
    period: Optional[Period] = None,
    user_id: Optional[str] = None,
) -> List[AggregatedTickerStat]:
    """Per-ticker statistics inside ``period``.

    The first mention is the earliest timestamp (earlier input wins a tie),
    the last mention the latest (later input wins a tie).  Output is sorted
    by mention count descending, then ticker ascending.
    """
    counts: Dict[str, int] = {}
    first: Dict[str, MentionRecord] = {}
    last: Dict[str, MentionRecord] = {}
    for rec in records:
        if period is not None and not period.contains(rec.timestamp):
            continue
        if user_id is not None and rec.user_id != user_id:
            continue
        sym = rec.ticker.upper()
        counts[sym] = counts.get(sym, 0) + 1
        if sym not in first or rec.timestamp < first[sym].timestamp:
            first[sym] = rec
        if sym not in last or rec.timestamp >= last[sym].timestamp:
            last[sym] = rec

    stats = [
        AggregatedTickerStat(
            ticker=sym,
            period_start=period.start if period else None,
            period_end=period.end if period else None,
            mention_count=count,
            first_mention=FirstMention(
                user_id=first[sym].user_id,
                user_name=first[sym].user_display_name,
                timestamp=first[sym].timestamp,
                permalink=first[sym].permalink,
            ),
            last_mention=LastMention(
                timestamp=last[sym].timestamp, permalink=last[sym].permalink
            ),
        )
        for sym, count in counts.items()
    ]
    stats.sort(key=lambda s: (-s.mention_count, s.ticker))
    return stats


def first_mention_leaders(stats: Iterable[AggregatedTickerStat]) -> List[UserFirstMentions]:
    """Count, per user, the tickers whose first mention they hold."""
    by_user: Dict[str, List] = {}
    for stat in stats:
        fm = stat.first_mention
        if not fm.user_id:
            continue
        entry = by_user.setdefault(fm.user_id, [fm.user_name, 0])
        if not entry[0] and fm.user_name:
            entry[0] = fm.user_name
        entry[1] += 1
    leaders = [UserFirstMentions(uid, name, count) for uid, (name, count) in by_user.items()]
    leaders.sort(key=lambda u: (-u.count, u.user_name, u.user_id))
    return leaders


def ticker_totals(
    records: Iterable[MentionRecord],
    user_id: Optional[str] = None,
    since: Optional[datetime] = None,
    min_mentions: int = 1,
) -> List[TickerTotal]:
    counts: Dict[str, int] = {}
    latest: Dict[str, datetime] = {}
    for rec in records:
        if user_id is not None and rec.user_id != user_id:
            continue
        if since is not None and rec.timestamp < since:
            continue
        sym = rec.ticker.upper()
        counts[sym] = counts.get(sym, 0) + 1
        if sym not in latest or rec.timestamp > latest[sym]:
            latest[sym] = rec.timestamp
    totals = [
        TickerTotal(sym, count, latest[sym])
        for sym, count in counts.items()
        if count >= min_mentions
    ]
    totals.sort(key=lambda t: (-t.count, t.ticker))
    return totals
