from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List

from .errors import PersistenceError
from .ingest import BackfillController, BackfillReport

logger = logging.getLogger(__name__)


class BootstrapCoordinator:
    """Run the startup backfill of every tracked channel.

    Channels are independent, so their controllers run concurrently and a
    failing channel does not hold back the others.  Live ingestion should
    start once :meth:`run` returns.
    """

    def __init__(self, controllers: Iterable[BackfillController]) -> None:
        self.controllers: Dict[str, BackfillController] = {
            c.channel_id: c for c in controllers
        }
        self.ready = asyncio.Event()
        self.progress = 0
        self.reports: Dict[str, BackfillReport] = {}
        self.failures: Dict[str, Exception] = {}

    async def _run_one(self, controller: BackfillController) -> BackfillReport:
        try:
            report = await controller.run()
        except Exception as exc:
            logger.exception("backfill for channel %s failed", controller.channel_id)
            report = BackfillReport(
                channel_id=controller.channel_id, error=f"{type(exc).__name__}: {exc}"
            )
            self.failures[controller.channel_id] = exc
        self.reports[controller.channel_id] = report
        self.progress = 100 * len(self.reports) // max(len(self.controllers), 1)
        return report

    async def run(self) -> List[BackfillReport]:
        """Backfill all channels, then mark the coordinator ready.

        Every channel ends up live, so ``ready`` is set even when some of
        them failed; their errors show in :meth:`status`.  A store failure
        is re-raised after that, because nothing can be ingested without
        the store.
        """
        reports = await asyncio.gather(
            *(self._run_one(c) for c in self.controllers.values())
        )
        self.progress = 100
        self.ready.set()
        for exc in self.failures.values():
            if isinstance(exc, PersistenceError):
                raise exc
        return list(reports)

    def is_ready(self) -> bool:
        return self.ready.is_set()

    def status(self) -> dict:
        state = "READY" if self.is_ready() else "BOOTSTRAPPING"
        return {
            "state": state,
            "progress": self.progress,
            "channels": {cid: c.state.value for cid, c in self.controllers.items()},
            "errors": {cid: r.error for cid, r in self.reports.items() if r.error},
        }
