import asyncio

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from auditstream.core.config.settings import Config
from auditstream.main import create_app
from auditstream.streams.broadcaster import EventBroadcaster
from auditstream.streams.events import StreamChannel


async def _wait_for_subscriber(broadcaster: EventBroadcaster, channel: StreamChannel) -> None:
    for _ in range(500):
        if broadcaster.subscriber_count(channel):
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"no subscriber on {channel.value}")


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster(queue_size=10)


@pytest.fixture
def app(broadcaster: EventBroadcaster) -> FastAPI:
    app_config = Config()
    app_config.stream.keepalive_seconds = 60
    return create_app(broadcaster=broadcaster, app_config=app_config)


class TestEventStreams:
    @pytest.mark.asyncio
    async def test_stream_is_utf8_event_stream(self, app: FastAPI, broadcaster: EventBroadcaster) -> None:
        """Non-ASCII audit records arrive intact as text/event-stream."""
        headers = {"Accept": "text/event-stream", "Origin": "http://localhost:3000"}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            request = asyncio.create_task(client.get("/api/kafka/auth", headers=headers))
            await _wait_for_subscriber(broadcaster, StreamChannel.AUTH)

            delivered = broadcaster.publish(StreamChannel.AUTH, {"principal": "User:관리자", "granted": True})
            await broadcaster.close()
            response = await request

        assert delivered == 1
        assert response.status_code == 200
        assert response.headers["content-type"] == "text/event-stream;charset=utf-8"
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

        body = response.content.decode("utf-8")
        assert "�" not in body
        assert body.startswith(":connected\nretry:5000\n\n")
        assert 'event:auth\ndata:{"principal": "User:관리자", "granted": true}\n\n' in body

    @pytest.mark.asyncio
    async def test_general_stream_uses_streams_event_name(self, app: FastAPI, broadcaster: EventBroadcaster) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            request = asyncio.create_task(client.get("/api/kafka/stream"))
            await _wait_for_subscriber(broadcaster, StreamChannel.STREAMS)

            broadcaster.publish("streams", "토픽 생성됨", event_id="42")
            await broadcaster.close()
            response = await request

        assert "id:42\nevent:streams\ndata:토픽 생성됨\n\n" in response.content.decode("utf-8")

    @pytest.mark.asyncio
    async def test_non_event_stream_accept_is_rejected(self, app: FastAPI) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/kafka/auth_failed", headers={"Accept": "application/json"})

        assert response.status_code == 406
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {
            "error": True,
            "code": "not_acceptable",
            "message": "Could not find acceptable representation for 'application/json'",
            "details": {"accept": "application/json", "supported": ["text/event-stream"]},
        }

    @pytest.mark.asyncio
    async def test_unknown_accept_charset_is_not_acceptable(self, app: FastAPI) -> None:
        headers = {"Accept": "text/event-stream;charset=klingon"}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/kafka/auth", headers=headers)

        assert response.status_code == 406
        assert response.json()["code"] == "not_acceptable"

    @pytest.mark.asyncio
    async def test_requested_ascii_charset_still_streams_utf8(
        self, app: FastAPI, broadcaster: EventBroadcaster
    ) -> None:
        headers = {"Accept": "text/event-stream;charset=us-ascii"}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            request = asyncio.create_task(client.get("/api/kafka/unauth", headers=headers))
            await _wait_for_subscriber(broadcaster, StreamChannel.UNAUTH)

            broadcaster.publish(StreamChannel.UNAUTH, {"principal": "관리자"})
            await broadcaster.close()
            response = await request

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/event-stream;charset=utf-8"
        body = response.content.decode("utf-8")
        assert "�" not in body
        assert 'event:unauth\ndata:{"principal": "관리자"}\n\n' in body

    @pytest.mark.asyncio
    async def test_malformed_accept_header(self, app: FastAPI) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/kafka/unauth", headers={"Accept": "text"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_media_type"

    @pytest.mark.asyncio
    async def test_health_reports_subscribers(self, app: FastAPI) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

        assert response.json()["subscribers"] == {"streams": 0, "auth": 0, "auth_failed": 0, "unauth": 0}
