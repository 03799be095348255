"""
Unit tests for request header classification.
"""

import pytest

from echoserver.echo import headers as headers_module
from echoserver.echo.headers import (
    CONTROL_HEADERS,
    RESERVED_HEADERS,
    RESPONSE_BODY_HEADER,
    STATUS_CODE_HEADER,
    HeaderClass,
    classify,
    is_pass_through,
    pass_through,
)


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize("name", sorted(RESERVED_HEADERS))
    def test_every_reserved_name(self, name: str):
        assert classify(name) is HeaderClass.RESERVED

    @pytest.mark.parametrize("name", ["Host", "USER-AGENT", "Authorization", "Sec-Fetch-Mode"])
    def test_reserved_is_case_insensitive(self, name: str):
        assert classify(name) is HeaderClass.RESERVED

    @pytest.mark.parametrize("name", ["Accept-Datetime", "X-Forwarded-Server", "Sec-Fetch-User", "Sec-CH-UA-Arch"])
    def test_reserved_prefix_families(self, name: str):
        assert classify(name) is HeaderClass.RESERVED

    @pytest.mark.parametrize("name", ["internal.status-code", "Internal.Status-Code", "INTERNAL.RESPONSE-BODY"])
    def test_control_headers(self, name: str):
        assert classify(name) is HeaderClass.CONTROL

    @pytest.mark.parametrize("name", ["X-Test", "Content-Type", "X-Request-Id", "Date", "internal.other"])
    def test_pass_through(self, name: str):
        assert classify(name) is HeaderClass.PASS_THROUGH
        assert is_pass_through(name)

    def test_control_wins_over_reserved(self, monkeypatch):
        """A control name stays a control header even if it is also listed as reserved."""
        assert CONTROL_HEADERS.isdisjoint(RESERVED_HEADERS)

        monkeypatch.setattr(
            headers_module, "RESERVED_HEADERS", RESERVED_HEADERS | CONTROL_HEADERS
        )

        assert classify(STATUS_CODE_HEADER) is HeaderClass.CONTROL
        assert classify(RESPONSE_BODY_HEADER) is HeaderClass.CONTROL


class TestPassThrough:
    """Tests for pass_through()."""

    def test_filters_and_keeps_order(self):
        fields = [
            ("Host", "localhost"),
            ("X-B", "1"),
            ("internal.status-code", "404"),
            ("Authorization", "Bearer xyz"),
            ("x-a", "2"),
            ("X-B", "3"),
        ]

        assert pass_through(fields) == [("X-B", "1"), ("x-a", "2"), ("X-B", "3")]

    def test_empty(self):
        assert pass_through([]) == []
