"""JSONL channel archive usable as a :class:`~tickerbot.chat.HistorySource`.

This does not talk to a chat platform.  It reads an exported message dump
(one JSON object per line) and serves it through the same paginated
``fetch_after`` call a real connector provides, which is handy for local
runs and tests.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Union

from ..errors import NotFoundError, TransientFetchError
from . import ChatMessage

logger = logging.getLogger(__name__)


class JsonlArchive:
    """Serve messages from a JSONL export, oldest first."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)

    def _load(self) -> List[ChatMessage]:
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError as exc:
            raise NotFoundError(f"archive not found: {self.path}") from exc
        except OSError as exc:
            raise TransientFetchError(f"cannot read archive {self.path}: {exc}") from exc
        messages = []
        for lineno, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                messages.append(ChatMessage.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("%s:%d: skipping bad row: %s", self.path, lineno, exc)
        return messages

    async def fetch_after(self, channel_id: str, cursor: int, limit: int) -> List[ChatMessage]:
        messages = await asyncio.to_thread(self._load)
        page = sorted(
            (m for m in messages if m.channel_id == channel_id and m.id > cursor),
            key=lambda m: m.id,
        )
        return page[:limit]
