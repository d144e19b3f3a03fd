"""Persistence layer exports."""

from .models import Checkpoint, Cursor, MentionRecord, MentionUser, StoreDocument
from .store import MentionStore, StoreSnapshot

__all__ = [
    "Checkpoint",
    "Cursor",
    "MentionRecord",
    "MentionUser",
    "MentionStore",
    "StoreDocument",
    "StoreSnapshot",
]
