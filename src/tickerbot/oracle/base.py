"""Price series types and the oracle interface."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional


@dataclass(frozen=True)
class DailyPoint:
    trading_day: date
    open: Optional[float]
    close: Optional[float]
    adj_close: Optional[float]


@dataclass(frozen=True)
class PriceSeries:
    """Daily candles of one ticker, oldest first.

    ``trading_day`` values are calendar days in ``exchange_timezone``.
    """

    ticker: str
    points: List[DailyPoint]
    exchange_timezone: str


class PriceOracle:
    async def daily_series(self, ticker: str, since: datetime) -> PriceSeries:  # pragma: no cover - interface
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
