"""Pydantic models for the durable mention document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    model_validator,
)

# Cursors are snowflake-style integers, stored as decimal strings.
Cursor = Annotated[int, PlainSerializer(str, return_type=str, when_used="json")]


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class _DocModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class MentionUser(_DocModel):
    id: str
    name: str = ""


class MentionRecord(_DocModel):
    """One validated ticker inside one chat message."""

    ticker: str
    source_message_id: Cursor = Field(alias="messageId")
    source_channel_id: str = Field(alias="channelId")
    guild_id: Optional[str] = Field(default=None, alias="guildId")
    user: MentionUser
    permalink: str = Field(default="", alias="link")
    timestamp: AwareDatetime
    raw_text: str = Field(default="", alias="content")

    @property
    def key(self) -> tuple:
        return (self.source_message_id, self.ticker)

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def user_display_name(self) -> str:
        return self.user.name


class Checkpoint(_DocModel):
    """Last processed cursor of one channel."""

    channel_id: str = Field(alias="channelId")
    last_processed_cursor: Cursor = Field(alias="lastProcessedId")
    last_processed_at: AwareDatetime = Field(alias="lastProcessedAt")


class StoreDocument(BaseModel):
    """The whole persisted document; every mutation rewrites it."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    updated: AwareDatetime = Field(default_factory=utcnow)
    entries: List[MentionRecord] = Field(default_factory=list)
    checkpoints: Dict[str, Checkpoint] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _upgrade_layout(cls, data: Any) -> Any:
        # legacy files are a bare array of entries
        if isinstance(data, list):
            return {"entries": data, "checkpoints": {}}
        if isinstance(data, dict):
            data = dict(data)
            checkpoints = data.get("checkpoints") or {}
            data["checkpoints"] = {
                channel: (
                    {"channelId": channel, **cp}
                    if isinstance(cp, dict) and "channelId" not in cp
                    and "channel_id" not in cp
                    else cp
                )
                for channel, cp in checkpoints.items()
            }
            if data.get("entries") is None:
                data["entries"] = []
        return data

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
