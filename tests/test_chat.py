import asyncio
import json
from datetime import datetime, timezone

import pytest

from tickerbot.chat import ChatMessage
from tickerbot.chat.archive import JsonlArchive
from tickerbot.chat.snowflake import snowflake_from_timestamp, timestamp_from_snowflake
from tickerbot.errors import NotFoundError
from tickerbot.ingest import BackfillController, BackfillState, MentionIngestor


def test_snowflake_from_timestamp():
    ts = datetime(2015, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
    assert snowflake_from_timestamp(ts) == 1000 << 22
    assert timestamp_from_snowflake(1000 << 22) == ts


def test_snowflake_orders_like_time():
    a = snowflake_from_timestamp(datetime(2025, 8, 1, tzinfo=timezone.utc))
    b = snowflake_from_timestamp(datetime(2025, 8, 2, tzinfo=timezone.utc))
    assert a < b


def test_snowflake_rejects_naive_datetime():
    with pytest.raises(ValueError):
        snowflake_from_timestamp(datetime(2025, 8, 1))


def test_message_from_dict():
    msg = ChatMessage.from_dict(
        {
            "id": "1402",
            "channelId": 77,
            "authorId": "9",
            "authorName": "ann",
            "text": None,
            "createdAt": "2025-08-04T14:30:00Z",
            "mentions": [5],
        }
    )
    assert msg.id == 1402
    assert msg.channel_id == "77"
    assert msg.text == ""
    assert msg.created_at == datetime(2025, 8, 4, 14, 30, tzinfo=timezone.utc)
    assert msg.mentioned_user_ids == frozenset({"5"})
    assert not msg.author_is_bot


def _row(i, channel="c1"):
    return json.dumps(
        {
            "id": i,
            "channelId": channel,
            "authorId": "u1",
            "authorName": "ann",
            "text": f"msg {i}",
            "createdAt": "2025-08-04T14:30:00+00:00",
        }
    )


def test_archive_pages_after_cursor(tmp_path):
    path = tmp_path / "export.jsonl"
    path.write_text("\n".join([_row(3), _row(1), "{broken", _row(2, "c2"), "", _row(5)]) + "\n")
    archive = JsonlArchive(path)
    page = asyncio.run(archive.fetch_after("c1", 1, 10))
    assert [m.id for m in page] == [3, 5]
    assert [m.id for m in asyncio.run(archive.fetch_after("c1", 0, 1))] == [1]


def test_missing_archive(tmp_path):
    with pytest.raises(NotFoundError):
        asyncio.run(JsonlArchive(tmp_path / "none.jsonl").fetch_after("c1", 0, 10))


def test_message_without_utc_offset_is_rejected():
    with pytest.raises(ValueError):
        ChatMessage.from_dict(
            {"id": 1, "channelId": "c1", "authorId": "u1", "createdAt": "2025-08-04T14:30:00"}
        )


def test_archive_row_without_offset_does_not_block_backfill(tmp_path, store, universe):
    path = tmp_path / "export.jsonl"
    rows = [
        {"id": 1, "channelId": "c1", "authorId": "u1", "authorName": "ann",
         "text": "TSLA", "createdAt": "2025-08-04T14:30:00"},
        {"id": 2, "channelId": "c1", "authorId": "u1", "authorName": "ann",
         "text": "AAPL", "createdAt": "2025-08-04T14:31:00Z"},
    ]
    path.write_text("\n".join(json.dumps(r) for r in rows))
    ctl = BackfillController("c1", MentionIngestor(store, universe), JsonlArchive(path), lambda ts: 0)

    report = asyncio.run(ctl.run())

    assert ctl.state is BackfillState.LIVE
    assert report.error is None
    assert [r.ticker for r in store.load_all().entries] == ["AAPL"]
    assert store.get_checkpoint("c1").last_processed_cursor == 2
