"""Run the ticker-seeker read API server.

The server loads the ticker universe, runs the startup backfill in the
background (when ``--archive`` is given) and serves leaderboards and
rankings over HTTP.
"""

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent))

import asyncio
import contextlib
import logging

import uvicorn

from tickerbot.chat.archive import JsonlArchive
from tickerbot.errors import ValidationError
from tickerbot.runtime import build_runtime
from tickerbot.server import create_app
from tickerbot.universe import load_universe
from tickerbot.utils import BotConfig, parse_args


def _log_backfill_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logging.error("startup backfill failed", exc_info=exc)


def main() -> None:
    args = parse_args()
    cfg = BotConfig.from_args(args)
    logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.INFO))
    try:
        universe = load_universe(cfg.universe_path)
    except ValidationError as exc:
        logging.error("invalid ticker universe: %s", exc)
        sys.exit(2)

    source = JsonlArchive(cfg.archive_path) if cfg.archive_path else None
    runtime = build_runtime(cfg, universe, source)
    app = create_app(cfg, runtime.commands, runtime.bootstrap)

    @app.on_event("startup")
    async def start_backfill() -> None:
        task = asyncio.create_task(runtime.bootstrap.run())
        task.add_done_callback(_log_backfill_result)
        app.state.backfill_task = task

    @app.on_event("shutdown")
    async def stop_backfill() -> None:
        task = app.state.backfill_task
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await runtime.oracle.aclose()

    uvicorn.run(app, host=cfg.host, port=cfg.port)


if __name__ == "__main__":
    main()
