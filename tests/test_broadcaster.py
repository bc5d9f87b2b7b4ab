import asyncio
import json

import pytest

from relay.errors import SubscriberClosedError
from relay.routers.events import event_stream
from relay.services.broadcaster import EventBroadcaster, Subscriber, format_event
from tests.fakes import RecordingSubscriber


def test_format_event_wire_format():
    frame = format_event("openphone", {"type": "message.received", "text": "olá"})
    event_line, data_line, blank, end = frame.split("\n")
    assert event_line == "event: openphone"
    assert json.loads(data_line[len("data: "):]) == {"type": "message.received", "text": "olá"}
    assert blank == "" and end == ""


def test_broadcast_with_no_subscribers():
    broadcaster = EventBroadcaster()
    assert broadcaster.broadcast("openphone", {"a": 1}) == 0


def test_broadcast_reaches_every_subscriber():
    broadcaster = EventBroadcaster()
    subs = [broadcaster.subscribe(RecordingSubscriber()) for _ in range(3)]

    delivered = broadcaster.broadcast("openphone", {"id": "AC1"})

    assert delivered == 3
    for sub in subs:
        assert sub.frames == [format_event("openphone", {"id": "AC1"})]


def test_failing_subscriber_is_dropped_without_affecting_others():
    broadcaster = EventBroadcaster()
    good_a = broadcaster.subscribe(RecordingSubscriber())
    bad = broadcaster.subscribe(RecordingSubscriber(fail=True))
    good_b = broadcaster.subscribe(RecordingSubscriber())

    delivered = broadcaster.broadcast("openphone", {"n": 1})

    assert delivered == 2
    assert len(good_a.frames) == 1 and len(good_b.frames) == 1
    assert bad.closed
    assert broadcaster.subscriber_count == 2

    broadcaster.broadcast("openphone", {"n": 2})
    assert len(good_a.frames) == 2
    assert bad.frames == []


def test_unsubscribe_is_idempotent():
    broadcaster = EventBroadcaster()
    sub = broadcaster.subscribe(RecordingSubscriber())

    broadcaster.unsubscribe(sub)
    broadcaster.unsubscribe(sub)
    broadcaster.unsubscribe(RecordingSubscriber())

    assert sub.closed
    assert broadcaster.subscriber_count == 0


def test_late_subscriber_does_not_see_earlier_events():
    broadcaster = EventBroadcaster()
    early = broadcaster.subscribe(RecordingSubscriber())
    broadcaster.broadcast("openphone", {"n": 1})
    late = broadcaster.subscribe(RecordingSubscriber())
    broadcaster.broadcast("openphone", {"n": 2})

    assert len(early.frames) == 2
    assert late.frames == [format_event("openphone", {"n": 2})]


def test_close_closes_all_subscribers():
    broadcaster = EventBroadcaster()
    subs = [broadcaster.subscribe(RecordingSubscriber()) for _ in range(2)]

    broadcaster.close()

    assert all(s.closed for s in subs)
    assert broadcaster.subscriber_count == 0


def test_subscriber_queue_yields_frames_until_closed():
    async def scenario():
        sub = Subscriber()
        sub.write("one")
        sub.write("two")
        sub.close()
        return [frame async for frame in sub]

    assert asyncio.run(scenario()) == ["one", "two"]


def test_closed_subscriber_rejects_writes():
    sub = Subscriber()
    sub.close()
    with pytest.raises(SubscriberClosedError):
        sub.write("frame")


def test_event_stream_relays_broadcasts_and_unsubscribes_on_disconnect():
    async def scenario():
        broadcaster = EventBroadcaster()
        stream = event_stream(broadcaster)

        first = await stream.__anext__()
        count_while_open = broadcaster.subscriber_count
        broadcaster.broadcast("openphone", {"type": "message.received"})
        frame = await stream.__anext__()

        # client disconnect: Starlette tears the generator down
        await stream.aclose()
        return first, count_while_open, frame, broadcaster.subscriber_count

    first, count_while_open, frame, count_after = asyncio.run(scenario())
    assert first == "\n"
    assert count_while_open == 1
    assert frame == format_event("openphone", {"type": "message.received"})
    assert count_after == 0


def test_event_stream_ends_when_broadcaster_closes():
    async def scenario():
        broadcaster = EventBroadcaster()
        broadcaster.broadcast("openphone", {"before": True})
        stream = event_stream(broadcaster)
        await stream.__anext__()
        broadcaster.close()
        return [frame async for frame in stream]

    assert asyncio.run(scenario()) == []
