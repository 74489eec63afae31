import asyncio

import pytest

from auditstream.core.errors import UnknownChannelError
from auditstream.streams.broadcaster import EventBroadcaster
from auditstream.streams.events import StreamChannel


class TestEventBroadcaster:
    """Test subscriber fan-out, back-pressure and shutdown."""

    @pytest.fixture
    def broadcaster(self) -> EventBroadcaster:
        return EventBroadcaster(queue_size=2)

    @pytest.mark.asyncio
    async def test_publish_reaches_channel_subscribers_only(self, broadcaster: EventBroadcaster) -> None:
        async with broadcaster.subscribe("auth") as auth_queue, broadcaster.subscribe("unauth") as unauth_queue:
            delivered = broadcaster.publish(StreamChannel.AUTH, {"granted": True})

            assert delivered == 1
            event = auth_queue.get_nowait()
            assert event.event == "auth"
            assert event.data == '{"granted": true}'
            assert unauth_queue.empty()

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self, broadcaster: EventBroadcaster) -> None:
        assert broadcaster.publish("streams", "nobody listening") == 0

    @pytest.mark.asyncio
    async def test_subscription_is_removed_on_exit(self, broadcaster: EventBroadcaster) -> None:
        async with broadcaster.subscribe("streams"):
            assert broadcaster.subscriber_count("streams") == 1
            assert broadcaster.subscriber_count() == 1

        assert broadcaster.subscriber_count("streams") == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_for_that_subscriber_only(self, broadcaster: EventBroadcaster) -> None:
        async with broadcaster.subscribe("auth") as slow, broadcaster.subscribe("auth") as fast:
            broadcaster.publish("auth", "1")
            broadcaster.publish("auth", "2")
            fast.get_nowait()
            fast.get_nowait()

            delivered = broadcaster.publish("auth", "3")

            assert delivered == 1
            assert slow.qsize() == 2
            assert fast.get_nowait().data == "3"

    @pytest.mark.asyncio
    async def test_unknown_channel(self, broadcaster: EventBroadcaster) -> None:
        with pytest.raises(UnknownChannelError):
            broadcaster.publish("metrics", "x")

    @pytest.mark.asyncio
    async def test_event_id_with_line_break_is_rejected(self, broadcaster: EventBroadcaster) -> None:
        async with broadcaster.subscribe("auth") as queue:
            with pytest.raises(ValueError, match="line breaks"):
                broadcaster.publish("auth", "x", event_id="1\ndata:forged")

            assert queue.empty()

    @pytest.mark.asyncio
    async def test_events_start_with_connected_comment(self, broadcaster: EventBroadcaster) -> None:
        events = broadcaster.events("auth", keepalive_seconds=5, retry_ms=3000)

        first = await events.__anext__()
        await events.aclose()

        assert first.comment == "connected"
        assert first.retry == 3000
        assert broadcaster.subscriber_count("auth") == 0

    @pytest.mark.asyncio
    async def test_events_emit_keepalive_when_idle(self, broadcaster: EventBroadcaster) -> None:
        events = broadcaster.events("streams", keepalive_seconds=0.01)

        await events.__anext__()
        keepalive = await events.__anext__()
        await events.aclose()

        assert keepalive.comment == "keepalive"
        assert keepalive.data is None

    @pytest.mark.asyncio
    async def test_close_ends_open_streams(self, broadcaster: EventBroadcaster) -> None:
        received = []

        async def consume() -> None:
            async for event in broadcaster.events("unauth", keepalive_seconds=5):
                received.append(event)

        consumer = asyncio.create_task(consume())
        while broadcaster.subscriber_count("unauth") == 0:
            await asyncio.sleep(0)

        broadcaster.publish("unauth", "denied")
        await broadcaster.close()
        await asyncio.wait_for(consumer, timeout=1)

        assert [e.data for e in received] == [None, "denied"]
        assert broadcaster.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_close_with_full_queue(self, broadcaster: EventBroadcaster) -> None:
        async with broadcaster.subscribe("auth") as queue:
            broadcaster.publish("auth", "1")
            broadcaster.publish("auth", "2")

            await broadcaster.close()

            assert queue.get_nowait().data == "2"
            assert queue.get_nowait() is None

    @pytest.mark.asyncio
    async def test_subscribe_after_close_ends_immediately(self, broadcaster: EventBroadcaster) -> None:
        await broadcaster.close()

        received = [event async for event in broadcaster.events("auth", keepalive_seconds=5)]

        assert [e.comment for e in received] == ["connected"]
