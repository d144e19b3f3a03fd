"""FastAPI application exposing the mention views.

Endpoints:
* ``GET /health`` – service liveness
* ``GET /status`` – backfill progress per channel
* ``GET /tickers`` – all tracked tickers with mention totals
* ``GET /users/{user_id}/tickers`` – one user's tickers
* ``GET /leaderboard`` – month-to-date leaderboard and first-mention leaders
* ``GET /gainers`` – hot-N price gainers of this month's tickers
* ``GET /dashboard`` – MTD summary
* ``GET /metrics`` – Prometheus metrics
"""

from __future__ import annotations

import time
from datetime import date, datetime, time as dtime
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from pydantic import BaseModel

from ..bootstrap import BootstrapCoordinator
from ..service import BaselineMode, CommandService, TickerListing
from ..utils import BotConfig


class TickerTotalOut(BaseModel):
    ticker: str
    count: int
    last: datetime


class TickerListingOut(BaseModel):
    items: List[TickerTotalOut]
    unique: int
    total: int


class FirstMentionOut(BaseModel):
    user_id: str
    user_name: str
    timestamp: datetime
    permalink: str


class LastMentionOut(BaseModel):
    timestamp: datetime
    permalink: str


class TickerStatOut(BaseModel):
    ticker: str
    mention_count: int
    first_mention: FirstMentionOut
    last_mention: LastMentionOut


class FirstMentionLeaderOut(BaseModel):
    user_id: str
    user_name: str
    count: int


class LeaderboardOut(BaseModel):
    period_start: datetime
    period_end: datetime
    tickers: List[TickerStatOut]
    first_mentions: List[FirstMentionLeaderOut]


class GainerOut(BaseModel):
    rank: int
    ticker: str
    start_price: float
    end_price: float
    pct_change: float
    first_user_name: Optional[str] = None
    first_permalink: Optional[str] = None


class DashboardOut(BaseModel):
    total_tracked: int
    month_unique: int
    top_tickers: List[str]
    top_posters: List[str]
    top_gainers: List[str]


def _listing_out(listing: TickerListing) -> TickerListingOut:
    return TickerListingOut(
        items=[TickerTotalOut(ticker=i.ticker, count=i.count, last=i.last_timestamp) for i in listing.items],
        unique=listing.unique,
        total=listing.total,
    )


def create_app(
    cfg: BotConfig,
    commands: CommandService,
    bootstrap: BootstrapCoordinator,
) -> FastAPI:
    app = FastAPI(title="ticker-seeker API")

    async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "timestamp": int(time.time())}

    @app.get("/status")
    async def status() -> dict:
        return bootstrap.status()

    @app.get("/tickers", response_model=TickerListingOut)
    async def tickers(min_mentions: int = Query(1, ge=1)) -> TickerListingOut:
        return _listing_out(await commands.all_tickers(min_mentions=min_mentions))

    @app.get("/users/{user_id}/tickers", response_model=TickerListingOut)
    async def user_tickers(user_id: str, since: Optional[date] = None) -> TickerListingOut:
        since_ts = datetime.combine(since, dtime(), tzinfo=commands.tz) if since else None
        return _listing_out(await commands.my_tickers(user_id, since=since_ts))

    @app.get("/leaderboard", response_model=LeaderboardOut)
    async def leaderboard() -> LeaderboardOut:
        board = await commands.leaderboard()
        return LeaderboardOut(
            period_start=board.period.start,
            period_end=board.period.end,
            tickers=[
                TickerStatOut(
                    ticker=s.ticker,
                    mention_count=s.mention_count,
                    first_mention=FirstMentionOut(**vars(s.first_mention)),
                    last_mention=LastMentionOut(**vars(s.last_mention)),
                )
                for s in board.stats
            ],
            first_mentions=[FirstMentionLeaderOut(**vars(u)) for u in board.first_mentions],
        )

    @app.get("/gainers", response_model=List[GainerOut])
    async def gainers(
        top: int = Query(5, ge=1, le=100),
        mode: BaselineMode = BaselineMode.MONTH,
        user_id: Optional[str] = None,
    ) -> List[GainerOut]:
        ranked = await commands.hot_gainers(top=top, mode=mode, user_id=user_id)
        return [
            GainerOut(
                rank=i,
                ticker=r.ticker,
                start_price=r.start_price,
                end_price=r.end_price,
                pct_change=round(r.pct_change, 2),
                first_user_name=getattr(r.provenance, "user_name", None),
                first_permalink=getattr(r.provenance, "permalink", None),
            )
            for i, r in enumerate(ranked, start=1)
        ]

    @app.get("/dashboard", response_model=DashboardOut)
    async def dashboard() -> DashboardOut:
        return DashboardOut(**vars(await commands.dashboard()))

    app.state.config = cfg
    return app
