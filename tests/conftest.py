from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from tickerbot.chat import ChatMessage
from tickerbot.oracle import DailyPoint, PriceOracle, PriceSeries
from tickerbot.persistence import MentionRecord, MentionStore, MentionUser
from tickerbot.universe import TickerUniverse

T0 = datetime(2025, 8, 4, 14, 30, tzinfo=timezone.utc)


def make_message(
    msg_id: int,
    text: str = "",
    author_id: str = "u1",
    author_name: str = "ann",
    channel_id: str = "c1",
    created_at: Optional[datetime] = None,
    **kwargs,
) -> ChatMessage:
    return ChatMessage(
        id=msg_id,
        channel_id=channel_id,
        author_id=author_id,
        author_name=author_name,
        text=text,
        created_at=created_at or T0 + timedelta(minutes=msg_id),
        permalink=f"https://chat.example/{channel_id}/{msg_id}",
        **kwargs,
    )


def make_record(
    msg_id: int,
    ticker: str = "TSLA",
    user_id: str = "u1",
    user_name: str = "ann",
    timestamp: Optional[datetime] = None,
    channel_id: str = "c1",
) -> MentionRecord:
    return MentionRecord(
        ticker=ticker,
        source_message_id=msg_id,
        source_channel_id=channel_id,
        user=MentionUser(id=user_id, name=user_name),
        permalink=f"https://chat.example/{channel_id}/{msg_id}",
        timestamp=timestamp or T0 + timedelta(minutes=msg_id),
        raw_text=f"{ticker} mention",
    )


def daily_series(
    ticker: str,
    start: date,
    opens: List[Optional[float]],
    closes: Optional[List[Optional[float]]] = None,
    tz: str = "America/New_York",
    skip_weekends: bool = True,
) -> PriceSeries:
    """Build consecutive trading-day candles starting at ``start``."""
    closes = closes if closes is not None else opens
    points = []
    day = start
    for o, c in zip(opens, closes):
        while skip_weekends and day.weekday() >= 5:
            day += timedelta(days=1)
        points.append(DailyPoint(trading_day=day, open=o, close=c, adj_close=c))
        day += timedelta(days=1)
    return PriceSeries(ticker=ticker, points=points, exchange_timezone=tz)


class FakeOracle(PriceOracle):
    """Serve canned series; tickers in ``failing`` raise."""

    def __init__(self, series: Dict[str, PriceSeries], failing=()) -> None:
        self.series = series
        self.failing = set(failing)
        self.calls: List[str] = []

    async def daily_series(self, ticker: str, since: datetime) -> PriceSeries:  # type: ignore[override]
        self.calls.append(ticker)
        if ticker in self.failing:
            raise RuntimeError(f"boom {ticker}")
        return self.series[ticker]


@pytest.fixture
def universe() -> TickerUniverse:
    return TickerUniverse.from_symbols(["AAPL", "TSLA", "BRK.A", "GME", "NVDA", "AMD"])


@pytest.fixture
def store(tmp_path) -> MentionStore:
    return MentionStore(tmp_path / "scanner" / "db.json")
