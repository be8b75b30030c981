"""Tests for nestling.server.negotiation — return value to Response."""

import json

import pytest

from nestling.http.response import Response
from nestling.server.negotiation import negotiate


class TestNegotiatePassthrough:
    def test_response_passthrough(self) -> None:
        original = Response(body="hello", status=201)
        assert negotiate(original) is original


class TestNegotiateValues:
    def test_str_is_html(self) -> None:
        result = negotiate("<h1>Hi</h1>")
        assert result.status == 200
        assert result.content_type.startswith("text/html")
        assert result.text == "<h1>Hi</h1>"

    def test_bytes_is_octet_stream(self) -> None:
        result = negotiate(b"\x00\x01")
        assert result.content_type == "application/octet-stream"
        assert result.body_bytes == b"\x00\x01"

    def test_dict_is_json(self) -> None:
        result = negotiate({"id": 1, "tags": ["a"]})
        assert result.content_type.startswith("application/json")
        assert json.loads(result.text) == {"id": 1, "tags": ["a"]}

    def test_list_is_json(self) -> None:
        assert json.loads(negotiate([1, 2]).text) == [1, 2]


class TestNegotiateTuples:
    def test_value_and_status(self) -> None:
        result = negotiate(("Created", 201))
        assert result.status == 201
        assert result.text == "Created"

    def test_value_status_headers(self) -> None:
        result = negotiate(({"ok": True}, 202, {"x-job-id": "7"}))
        assert result.status == 202
        assert result.headers["X-Job-Id"] == "7"

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError, match="Cannot convert"):
            negotiate(object())

    def test_none_is_unsupported(self) -> None:
        with pytest.raises(TypeError):
            negotiate(None)
