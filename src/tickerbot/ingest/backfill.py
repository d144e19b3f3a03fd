"""Checkpointed historical catch-up for one channel.

A controller starts at the stored checkpoint (or at a synthesized cursor
``lookback`` ago when none exists), pages forward through history oldest
first and feeds every item through the ingestor, which advances the
checkpoint per item.  Because items are processed in cursor order, a crash
mid-run resumes strictly after the last committed item.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..chat import ChatMessage, HistorySource, TimestampToCursor
from ..errors import NotFoundError, PersistenceError, TransientFetchError
from .live import MentionIngestor

logger = logging.getLogger(__name__)


class BackfillState(str, enum.Enum):
    NOT_STARTED = "not_started"
    CATCHING_UP = "catching_up"
    LIVE = "live"


@dataclass
class BackfillReport:
    channel_id: str
    scanned: int = 0
    mentions_added: int = 0
    skipped: int = 0
    completed: bool = False
    error: Optional[str] = None


class BackfillController:
    """Replay missed history of ``channel_id`` and then hand off to live.

    Parameters
    ----------
    lookback:
        How far back to start when the channel has no checkpoint.
    page_size:
        Maximum items requested per history page.
    max_items:
        Optional cap on items replayed in one run.  ``None`` replays
        everything after the starting cursor.
    fetch_timeout:
        Seconds allowed for one page fetch.
    retries:
        Extra attempts for a page after a transient failure.
    """

    def __init__(
        self,
        channel_id: str,
        ingestor: MentionIngestor,
        source: HistorySource,
        timestamp_to_cursor: TimestampToCursor,
        lookback: timedelta = timedelta(days=14),
        page_size: int = 100,
        max_items: Optional[int] = None,
        fetch_timeout: float = 15.0,
        retries: int = 2,
        retry_delay: float = 0.5,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.channel_id = channel_id
        self.ingestor = ingestor
        self.source = source
        self.timestamp_to_cursor = timestamp_to_cursor
        self.lookback = lookback
        self.page_size = page_size
        self.max_items = max_items
        self.fetch_timeout = fetch_timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self.clock = clock
        self.state = BackfillState.NOT_STARTED

    async def starting_cursor(self) -> int:
        checkpoint = await asyncio.to_thread(self.ingestor.store.get_checkpoint, self.channel_id)
        if checkpoint is not None:
            return checkpoint.last_processed_cursor
        return self.timestamp_to_cursor(self.clock() - self.lookback)


    async def _fetch_page(self, cursor: int) -> List[ChatMessage]:
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    self.source.fetch_after(self.channel_id, cursor, self.page_size),
                    timeout=self.fetch_timeout,
                )
            except (NotFoundError, PersistenceError):
                raise
            except asyncio.TimeoutError:
                err = TransientFetchError(f"history fetch timed out after {self.fetch_timeout}s")
            except TransientFetchError as exc:
                err = exc
            except Exception as exc:
                # connectors raise their own transport errors
                err = TransientFetchError(f"history fetch failed: {type(exc).__name__}: {exc}")
            if attempt >= self.retries:
                raise err
            attempt += 1
            delay = self.retry_delay * (2 ** (attempt - 1))
            logger.warning(
                "channel %s: page after %s failed (%s); retry %d/%d in %.1fs",
                self.channel_id, cursor, err, attempt, self.retries, delay,
            )
            await asyncio.sleep(random.uniform(0, delay))

    async def _process(self, message: ChatMessage, report: BackfillReport) -> None:
        try:
            report.mentions_added += await self.ingestor.handle(message, silent=True)
        except PersistenceError:
            raise
        except Exception:
            logger.exception(
                "channel %s: skipping message %s during backfill", self.channel_id, message.id
            )
            report.skipped += 1
            at = message.created_at if message.created_at.tzinfo is not None else self.clock()
            await asyncio.to_thread(
                self.ingestor.store.update_checkpoint, self.channel_id, message.id, at
            )

    async def run(self) -> BackfillReport:
        """Catch up and move to :attr:`BackfillState.LIVE`.

        Fetch failures end catch-up early and a message that cannot be
        ingested is skipped; either way the controller goes live.  A
        :class:`~tickerbot.errors.PersistenceError` propagates.
        """
        report = BackfillReport(channel_id=self.channel_id)
        if self.state is not BackfillState.NOT_STARTED:
            raise RuntimeError(f"backfill for {self.channel_id} already {self.state.value}")
        self.state = BackfillState.CATCHING_UP
        try:
            cursor = await self.starting_cursor()
            logger.info("channel %s: backfill starting after cursor %s", self.channel_id, cursor)
            while self.max_items is None or report.scanned < self.max_items:
                try:
                    page = await self._fetch_page(cursor)
                except NotFoundError as exc:
                    logger.warning("channel %s: %s; nothing to backfill", self.channel_id, exc)
                    page = []
                except TransientFetchError as exc:
                    report.error = str(exc)
                    logger.error(
                        "channel %s: aborting backfill after %d item(s): %s",
                        self.channel_id, report.scanned, exc,
                    )
                    break
                page = sorted((m for m in page if m.id > cursor), key=lambda m: m.id)
                if not page:
                    report.completed = True
                    break
                for message in page:
                    if self.max_items is not None and report.scanned >= self.max_items:
                        break
                    await self._process(message, report)
                    cursor = message.id
                    report.scanned += 1
        finally:
            self.state = BackfillState.LIVE
        if report.error is None:
            logger.info(
                "backfill complete for channel %s: scanned %d message(s), %d new mention(s)",
                self.channel_id, report.scanned, report.mentions_added,
            )
        return report
