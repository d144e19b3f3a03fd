"""Per-message ingestion shared by the live stream and backfill."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Collection, List, Optional

from prometheus_client import Counter

from ..chat import ChatMessage
from ..errors import PersistenceError
from ..extract import extract_tickers
from ..persistence import MentionRecord, MentionStore, MentionUser
from ..service.publisher import Publisher
from ..universe import TickerUniverse

logger = logging.getLogger(__name__)

MESSAGES_PROCESSED = Counter(
    "messages_processed", "Chat messages run through the ingestor", ["path"]
)


class MentionIngestor:
    """Extract, append and checkpoint one message at a time.

    ``agent_id`` and ``agent_handle`` identify the bot itself: its own
    messages and messages addressed to it are not scanned for tickers, but
    still advance the channel checkpoint.
    """

    def __init__(
        self,
        store: MentionStore,
        universe: TickerUniverse,
        agent_id: str = "",
        agent_handle: str = "",
        publisher: Optional[Publisher] = None,
    ) -> None:
        self.store = store
        self.universe = universe
        self.agent_id = agent_id
        self.agent_handle = agent_handle
        self.publisher = publisher

    def is_excluded(self, message: ChatMessage) -> bool:
        if message.author_is_bot:
            return True
        if self.agent_id and (
            message.author_id == self.agent_id or self.agent_id in message.mentioned_user_ids
        ):
            return True
        if self.agent_handle and f"@{self.agent_handle}" in message.text:
            return True
        return False

    def build_records(self, message: ChatMessage) -> List[MentionRecord]:
        text = message.text.strip()
        if not text or self.is_excluded(message):
            return []
        tickers = extract_tickers(text, self.universe)
        return [
            MentionRecord(
                ticker=ticker,
                source_message_id=message.id,
                source_channel_id=message.channel_id,
                guild_id=message.guild_id,
                user=MentionUser(id=message.author_id, name=message.author_name),
                permalink=message.permalink,
                timestamp=message.created_at,
                raw_text=text,
            )
            for ticker in sorted(tickers)
        ]

    async def handle(self, message: ChatMessage, silent: bool = False) -> int:
        """Process ``message`` and return the number of new mention records.

        The checkpoint is written only after the append succeeded, so a
        :class:`PersistenceError` leaves the cursor where it was.
        """
        records = self.build_records(message)
        added = 0
        if records:
            added = await asyncio.to_thread(self.store.append_mentions, records)
        await asyncio.to_thread(
            self.store.update_checkpoint, message.channel_id, message.id, message.created_at
        )
        MESSAGES_PROCESSED.labels("backfill" if silent else "live").inc()
        if records and not silent and self.publisher is not None:
            for record in records:
                self.publisher.publish(
                    {
                        "type": "mention_logged",
                        "ticker": record.ticker,
                        "user": record.user_display_name,
                        "channel_id": record.source_channel_id,
                        "message_id": record.source_message_id,
                    }
                )
        return added


async def consume_live(
    source: AsyncIterator[ChatMessage],
    ingestor: MentionIngestor,
    channels: Optional[Collection[str]] = None,
) -> int:
    """Feed a live message stream through ``ingestor``.

    Messages outside ``channels`` are ignored.  Store failures propagate;
    any other per-message failure is logged and the stream continues.
    Returns the number of messages processed once ``source`` is exhausted.
    """
    processed = 0
    async for message in source:
        if channels is not None and message.channel_id not in channels:
            continue
        try:
            await ingestor.handle(message)
        except PersistenceError:
            logger.exception("store failure on message %s", message.id)
            raise
        except Exception:
            logger.exception("failed to ingest message %s", message.id)
            continue
        processed += 1
    return processed
