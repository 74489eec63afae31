import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from auditstream.api.errors import create_error_response, register_exception_handlers
from auditstream.core.errors import MediaTypeNotSupportedError, MessageNotReadableError
from auditstream.web.converters import create_string_converter


@pytest.fixture
def app() -> FastAPI:
    test_app = FastAPI()
    register_exception_handlers(test_app, create_string_converter())

    @test_app.get("/unsupported")
    async def unsupported() -> None:
        raise MediaTypeNotSupportedError("Content type 'image/png' not supported")

    @test_app.get("/unreadable")
    async def unreadable() -> None:
        raise MessageNotReadableError("Body is not valid utf-8", details={"position": 3, "charset": "utf-8"})

    return test_app


def test_create_error_response() -> None:
    body = create_error_response("not_acceptable", "nope")

    assert body.error is True
    assert body.details is None


class TestExceptionHandlers:
    @pytest.mark.asyncio
    async def test_status_and_code_follow_error_class(self, app: FastAPI) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/unsupported")

        assert response.status_code == 415
        assert response.headers["content-type"] == "application/json"
        assert response.json()["code"] == "unsupported_media_type"

    @pytest.mark.asyncio
    async def test_details_are_rendered(self, app: FastAPI) -> None:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/unreadable")

        assert response.status_code == 400
        assert response.json()["details"] == {"position": 3, "charset": "utf-8"}
