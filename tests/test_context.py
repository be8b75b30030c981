"""Tests for nestling.context — request ContextVar."""

import pytest

from nestling.context import get_request, request_var
from nestling.http.request import Request


class TestRequestVar:
    def test_outside_request_raises(self) -> None:
        with pytest.raises(LookupError):
            get_request()

    def test_set_and_reset(self) -> None:
        request = Request.build("GET", "/ctx")
        token = request_var.set(request)
        try:
            assert get_request() is request
        finally:
            request_var.reset(token)
        with pytest.raises(LookupError):
            get_request()
