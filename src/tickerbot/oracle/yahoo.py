"""Yahoo Finance chart-based daily price oracle."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from ..errors import NotFoundError, TransientFetchError
from .base import DailyPoint, PriceOracle, PriceSeries

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
DEFAULT_EXCHANGE_TZ = "America/New_York"
USER_AGENT = "Mozilla/5.0 (compatible; ticker-seeker/0.1)"


def chart_range(since: datetime, now: datetime) -> str:
    """Smallest Yahoo ``range`` value that still covers ``since``."""
    days = max(1, (now - since).days)
    if days <= 30:
        return "1mo"
    if days <= 62:
        return "3mo"
    if days <= 370:
        return "1y"
    return "5y"


def yahoo_symbol(ticker: str) -> str:
    # Yahoo spells share classes with a dash: BRK.B -> BRK-B
    return ticker.replace(".", "-")


def _num(values: List, i: int) -> Optional[float]:
    if i >= len(values) or values[i] is None:
        return None
    return float(values[i])


def parse_chart(ticker: str, payload: dict) -> PriceSeries:
    """Convert a ``/v8/finance/chart`` response into a :class:`PriceSeries`."""
    chart = payload.get("chart") or {}
    results = chart.get("result") or []
    if not results:
        raise NotFoundError(f"yahoo chart has no result for {ticker}")
    r = results[0]
    tz_name = (r.get("meta") or {}).get("exchangeTimezoneName") or DEFAULT_EXCHANGE_TZ
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown exchange timezone %r for %s; using %s", tz_name, ticker, DEFAULT_EXCHANGE_TZ)
        tz_name = DEFAULT_EXCHANGE_TZ
        tz = ZoneInfo(tz_name)

    indicators = r.get("indicators") or {}
    q = (indicators.get("quote") or [{}])[0] or {}
    opens = q.get("open") or []
    closes = q.get("close") or []
    adjcloses = ((indicators.get("adjclose") or [{}])[0] or {}).get("adjclose") or []

    points = [
        DailyPoint(
            trading_day=datetime.fromtimestamp(ts, tz=timezone.utc).astimezone(tz).date(),
            open=_num(opens, i),
            close=_num(closes, i),
            adj_close=_num(adjcloses, i),
        )
        for i, ts in enumerate(r.get("timestamp") or [])
    ]
    if not points:
        raise NotFoundError(f"yahoo chart has no candles for {ticker}")
    return PriceSeries(ticker=ticker, points=points, exchange_timezone=tz_name)


class YahooChartOracle(PriceOracle):
    """Fetch daily candles from the Yahoo chart endpoint.

    Transport failures, timeouts and 5xx answers raise
    :class:`~tickerbot.errors.TransientFetchError`; unknown symbols raise
    :class:`~tickerbot.errors.NotFoundError`.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        url: str = CHART_URL,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ) -> None:
        self.session = client or httpx.AsyncClient(headers={"User-Agent": USER_AGENT})
        self.timeout = timeout
        self.url = url
        self.clock = clock

    async def __aenter__(self) -> "YahooChartOracle":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.session.aclose()

    async def aclose(self) -> None:
        await self.session.aclose()

    async def daily_series(self, ticker: str, since: datetime) -> PriceSeries:
        url = self.url.format(symbol=quote(yahoo_symbol(ticker), safe=""))
        params = {"interval": "1d", "range": chart_range(since, self.clock())}
        try:
            resp = await self.session.get(url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            raise TransientFetchError(f"price fetch for {ticker} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"price fetch for {ticker} failed: {exc}") from exc
        if resp.status_code == 404:
            raise NotFoundError(f"unknown ticker {ticker}")
        if resp.status_code >= 400:
            raise TransientFetchError(f"price fetch for {ticker} returned HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise TransientFetchError(f"price fetch for {ticker} returned invalid JSON") from exc
        return parse_chart(ticker, payload)
