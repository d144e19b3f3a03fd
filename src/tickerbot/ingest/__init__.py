"""Mention ingestion: live stream handling and checkpointed backfill."""

from .backfill import BackfillController, BackfillReport, BackfillState
from .live import MentionIngestor, consume_live

__all__ = [
    "BackfillController",
    "BackfillReport",
    "BackfillState",
    "MentionIngestor",
    "consume_live",
]
