"""In-process publish/subscribe for ingestion events.

The ingestor publishes a ``mention_logged`` event for every ticker it logs
from a live message.  The chat connector subscribes and posts the echo
("logged ticker: TSLA from user: ann") back to the channel.  Each subscriber
gets its own ``asyncio.Queue`` so consumers do not compete for events.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

logger = logging.getLogger(__name__)

OVERFLOW_POLICIES = ("drop_new", "drop_oldest", "raise")


class Publisher:
    """Fan-out event distributor backed by ``asyncio.Queue``.

    Parameters
    ----------
    maxsize:
        Maximum size for subscriber queues.  ``0`` means unbounded.
    overflow:
        Behaviour when a subscriber queue is full.  ``"drop_new"`` drops the
        event for that subscriber, ``"drop_oldest"`` removes the oldest event
        before enqueuing the new one and ``"raise"`` propagates
        :class:`asyncio.QueueFull`.
    """

    def __init__(self, maxsize: int = 0, overflow: str = "drop_new") -> None:
        if overflow not in OVERFLOW_POLICIES:
            raise ValueError(f"unknown overflow policy: {overflow}")
        self._maxsize = maxsize
        self._overflow = overflow
        self._subscribers: List[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        """Return a new queue receiving all future events."""

        q: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.append(q)
        return q

    def publish(self, event: dict) -> None:
        """Publish *event* to all subscribers."""

        for q in list(self._subscribers):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                if self._overflow == "drop_oldest":
                    q.get_nowait()
                    q.put_nowait(event)
                elif self._overflow == "drop_new":
                    logger.debug("subscriber queue full; dropping %s", event.get("type"))
                    continue
                else:  # "raise"
                    raise


__all__ = ["Publisher", "OVERFLOW_POLICIES"]
