import asyncio

import pytest

from tickerbot.service import Publisher


@pytest.mark.asyncio
async def test_fan_out_multiple_subscribers():
    publisher = Publisher(maxsize=10)
    q1 = publisher.subscribe()
    q2 = publisher.subscribe()

    message = {"type": "mention_logged", "ticker": "TSLA"}
    publisher.publish(message)

    r1 = await asyncio.wait_for(q1.get(), 1)
    r2 = await asyncio.wait_for(q2.get(), 1)
    assert r1 == message
    assert r2 == message


@pytest.mark.asyncio
async def test_drop_oldest_keeps_latest():
    publisher = Publisher(maxsize=1, overflow="drop_oldest")
    q = publisher.subscribe()
    publisher.publish({"n": 1})
    publisher.publish({"n": 2})
    assert q.get_nowait() == {"n": 2}


@pytest.mark.asyncio
async def test_drop_new_and_raise():
    drop = Publisher(maxsize=1)
    q = drop.subscribe()
    drop.publish({"n": 1})
    drop.publish({"n": 2})
    assert q.get_nowait() == {"n": 1}

    strict = Publisher(maxsize=1, overflow="raise")
    strict.subscribe()
    strict.publish({"n": 1})
    with pytest.raises(asyncio.QueueFull):
        strict.publish({"n": 2})


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        Publisher(overflow="block")
