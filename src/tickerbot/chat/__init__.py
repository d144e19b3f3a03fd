"""Chat-platform seam.

The connector to the actual chat platform lives outside this package.  It
hands messages over as :class:`ChatMessage` values and implements
:class:`HistorySource` for paginated catch-up.  The cursor of a message is
its own id; ids are integers with a total order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, FrozenSet, List, Mapping, Optional, Protocol

TimestampToCursor = Callable[[datetime], int]


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message as delivered by the connector."""

    id: int
    channel_id: str
    author_id: str
    author_name: str
    text: str
    created_at: datetime
    permalink: str = ""
    guild_id: Optional[str] = None
    author_is_bot: bool = False
    mentioned_user_ids: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        """Build a message from a plain mapping (archive rows, test fixtures).

        ``createdAt`` must carry a UTC offset; naive timestamps raise
        :class:`ValueError`.
        """
        created = data["createdAt"]
        if isinstance(created, str):
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        if created.tzinfo is None:
            raise ValueError(f"createdAt has no UTC offset: {data['createdAt']!r}")
        return cls(
            id=int(data["id"]),
            channel_id=str(data["channelId"]),
            author_id=str(data["authorId"]),
            author_name=data.get("authorName", ""),
            text=data.get("text", "") or "",
            created_at=created,
            permalink=data.get("permalink", ""),
            guild_id=data.get("guildId"),
            author_is_bot=bool(data.get("authorIsBot", False)),
            mentioned_user_ids=frozenset(str(u) for u in data.get("mentions", ())),
        )


class HistorySource(Protocol):
    async def fetch_after(self, channel_id: str, cursor: int, limit: int) -> List[ChatMessage]:
        """Return up to ``limit`` messages with ids strictly greater than ``cursor``.

        Any exception other than :class:`~tickerbot.errors.NotFoundError`
        counts as a failed fetch and is retried by the caller.
        """
        ...


__all__ = ["ChatMessage", "HistorySource", "TimestampToCursor"]
