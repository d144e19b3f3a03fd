"""Append-only mention log with per-channel checkpoints.

The whole log lives in one JSON document.  Every mutation is a
read-modify-write cycle over the full document, serialized by one lock per
:class:`MentionStore`.  Writes land in a temporary file that replaces the
document atomically, so concurrent readers see either the old or the new
document, never a partial one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

from prometheus_client import Counter
from pydantic import ValidationError as PydanticValidationError

from ..errors import PersistenceError
from .models import Checkpoint, MentionRecord, StoreDocument, utcnow

logger = logging.getLogger(__name__)

MENTIONS_ADDED = Counter("mentions_added", "Mention records appended to the store")
STORE_WRITE_FAILURES = Counter(
    "store_write_failures", "Failed whole-document writes of the mention store"
)


@dataclass(frozen=True)
class StoreSnapshot:
    """Read-only view of the full log and all checkpoints."""

    entries: Tuple[MentionRecord, ...]
    checkpoints: Dict[str, Checkpoint]


class MentionStore:
    """JSON-document mention store.

    Parameters
    ----------
    path:
        Location of the document.  A missing file is an empty store.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ read
    def _read(self) -> StoreDocument:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return StoreDocument()
        except OSError as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc
        if not raw.strip():
            return StoreDocument()
        try:
            return StoreDocument.model_validate(json.loads(raw))
        except (ValueError, PydanticValidationError) as exc:
            raise PersistenceError(f"malformed store document {self.path}: {exc}") from exc

    def load_all(self) -> StoreSnapshot:
        doc = self._read()
        return StoreSnapshot(entries=tuple(doc.entries), checkpoints=dict(doc.checkpoints))

    def get_checkpoint(self, channel_id: str) -> Optional[Checkpoint]:
        return self._read().checkpoints.get(channel_id)

    # ----------------------------------------------------------------- write
    def _write(self, doc: StoreDocument) -> None:
        payload = doc.to_json()
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            STORE_WRITE_FAILURES.inc()
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("could not remove temp file %s", tmp_name)

    def append_mentions(self, records: Iterable[MentionRecord]) -> int:
        """Append records whose ``(message id, ticker)`` key is new.

        The document is rewritten only if at least one record was added, so a
        retried call with identical records is a no-op.
        """
        records = list(records)
        if not records:
            return 0
        with self._lock:
            doc = self._read()
            have = {e.key for e in doc.entries}
            added = []
            for record in records:
                if record.key in have:
                    continue
                have.add(record.key)
                added.append(record)
            if not added:
                return 0
            doc.entries = [*doc.entries, *added]
            doc.updated = utcnow()
            self._write(doc)
        MENTIONS_ADDED.inc(len(added))
        logger.debug("appended %d mention(s) to %s", len(added), self.path)
        return len(added)

    def update_checkpoint(self, channel_id: str, cursor: int, at: datetime) -> bool:
        """Advance ``channel_id``'s checkpoint to ``cursor`` if it is newer."""
        with self._lock:
            doc = self._read()
            current = doc.checkpoints.get(channel_id)
            if current is not None and cursor <= current.last_processed_cursor:
                return False
            checkpoints = dict(doc.checkpoints)
            checkpoints[channel_id] = Checkpoint(
                channel_id=channel_id,
                last_processed_cursor=cursor,
                last_processed_at=at,
            )
            doc.checkpoints = checkpoints
            doc.updated = utcnow()
            self._write(doc)
        return True
