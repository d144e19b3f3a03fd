import asyncio

import pytest

from conftest import make_message
from tickerbot.aggregate import aggregate
from tickerbot.errors import PersistenceError
from tickerbot.ingest import MentionIngestor, consume_live
from tickerbot.service import Publisher


async def stream(messages):
    for message in messages:
        yield message


def test_live_message_logs_and_checkpoints(store, universe):
    ingestor = MentionIngestor(store, universe)
    added = asyncio.run(ingestor.handle(make_message(500, "buying $TSLA and brk-a")))
    assert added == 2
    assert sorted(r.ticker for r in store.load_all().entries) == ["BRK.A", "TSLA"]
    assert store.get_checkpoint("c1").last_processed_cursor == 500


def test_message_without_tickers_only_checkpoints(store, universe):
    ingestor = MentionIngestor(store, universe)
    assert asyncio.run(ingestor.handle(make_message(7, "   "))) == 0
    assert store.load_all().entries == ()
    assert store.get_checkpoint("c1").last_processed_cursor == 7


def test_records_keep_message_context(store, universe):
    ingestor = MentionIngestor(store, universe)
    msg = make_message(42, "  gme to the moon  ", author_id="77", author_name="zed", guild_id="g1")
    (rec,) = ingestor.build_records(msg)
    assert rec.ticker == "GME"
    assert rec.user_id == "77" and rec.user_display_name == "zed"
    assert rec.guild_id == "g1"
    assert rec.permalink == msg.permalink
    assert rec.timestamp == msg.created_at
    assert rec.raw_text == "gme to the moon"


def test_two_users_same_ticker_aggregate(store, universe):
    ingestor = MentionIngestor(store, universe)
    first = make_message(100, "TSLA looks good", author_id="u1", author_name="ann")
    second = make_message(101, "$tsla again", author_id="u2", author_name="bob")

    async def run():
        await ingestor.handle(first)
        await ingestor.handle(second)

    asyncio.run(run())
    entries = store.load_all().entries
    assert len(entries) == 2

    (stat,) = aggregate(entries)
    assert stat.mention_count == 2
    assert stat.first_mention.user_id == "u1"
    assert stat.last_mention.timestamp == second.created_at


@pytest.mark.asyncio
async def test_live_mentions_are_published(store, universe):
    publisher = Publisher()
    q = publisher.subscribe()
    ingestor = MentionIngestor(store, universe, publisher=publisher)

    await ingestor.handle(make_message(1, "AAPL and NVDA", author_name="ann"))
    await ingestor.handle(make_message(2, "AMD", author_name="ann"), silent=True)

    events = [q.get_nowait() for _ in range(q.qsize())]
    assert [(e["type"], e["ticker"], e["user"]) for e in events] == [
        ("mention_logged", "AAPL", "ann"),
        ("mention_logged", "NVDA", "ann"),
    ]


@pytest.mark.asyncio
async def test_consume_live_filters_channels_and_skips_failures(store, universe, monkeypatch):
    ingestor = MentionIngestor(store, universe)
    messages = [
        make_message(1, "AAPL"),
        make_message(2, "TSLA", channel_id="elsewhere"),
        make_message(3, "GME"),
        make_message(4, "NVDA"),
    ]
    real = ingestor.build_records

    def flaky(message):
        if message.id == 3:
            raise RuntimeError("bad message")
        return real(message)

    monkeypatch.setattr(ingestor, "build_records", flaky)
    processed = await consume_live(stream(messages), ingestor, channels={"c1"})

    assert processed == 2
    assert [r.ticker for r in store.load_all().entries] == ["AAPL", "NVDA"]
    assert store.get_checkpoint("elsewhere") is None
    assert store.get_checkpoint("c1").last_processed_cursor == 4


@pytest.mark.asyncio
async def test_consume_live_stops_on_store_failure(store, universe, monkeypatch):
    ingestor = MentionIngestor(store, universe)

    def broken(*args, **kwargs):
        raise PersistenceError("read-only filesystem")

    monkeypatch.setattr(store, "update_checkpoint", broken)
    with pytest.raises(PersistenceError):
        await consume_live(stream([make_message(1, "hello")]), ingestor)
