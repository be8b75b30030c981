"""Tests for nestling.middleware.messages — signed flash message cookies."""

import pytest
from itsdangerous import URLSafeSerializer

from nestling.app import Application
from nestling.config import AppConfig
from nestling.errors import ConfigurationError
from nestling.http.request import Request
from nestling.http.response import MSG_SUCCESS, Response
from nestling.middleware.messages import SALT, FlashMessages
from nestling.testing import TestClient


def _app() -> Application:
    app = Application(AppConfig(secret_key="test-secret", offload_sync_handlers=False))

    def save(request):
        return Response().add_message("Saved!", MSG_SUCCESS).redirect("/")

    def index(request):
        return {"messages": [m["text"] for m in request.messages]}

    app.add_route(r"POST:^/save$", save)
    app.add_route(r"GET:^/$", index)
    return app


class TestFlashMessages:
    def test_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError):
            FlashMessages("")

    async def test_messages_survive_one_redirect(self) -> None:
        async with TestClient(_app()) as client:
            response = await client.post("/save")
            assert response.status == 302
            assert "nestling_messages" in client.cookies

            first = await client.get("/")
            assert first.text == '{"messages": ["Saved!"]}'
            assert "nestling_messages" not in client.cookies

            second = await client.get("/")
            assert second.text == '{"messages": []}'

    async def test_tampered_cookie_ignored(self) -> None:
        async with TestClient(_app()) as client:
            client.cookies["nestling_messages"] = "forged.value"
            response = await client.get("/")
        assert response.text == '{"messages": []}'

    async def test_direct_middleware_call(self) -> None:
        serializer = URLSafeSerializer("k", salt=SALT)
        cookie = serializer.dumps([{"type": "info", "title": "", "text": "hello"}])
        request = Request.build(headers={"Cookie": f"flash={cookie}"})
        middleware = FlashMessages("k", cookie_name="flash")

        async def handler(req):
            return " ".join(m["text"] for m in req.messages)

        response = await middleware(request, handler)
        assert response.text == "hello"
        assert response.cookies[0].name == "flash"
        assert response.cookies[0].max_age == 0

    async def test_no_cookie_no_set_cookie(self) -> None:
        middleware = FlashMessages("k")

        async def handler(req):
            return "plain"

        response = await middleware(Request.build(), handler)
        assert response.cookies == []
