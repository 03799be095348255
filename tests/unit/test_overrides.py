"""
Unit tests for status and body override resolution.
"""

import pytest

from echoserver.echo.overrides import Resolution, resolve, resolve_body, resolve_status


class TestResolveStatus:
    """Tests for resolve_status()."""

    def test_absent_is_200(self):
        assert resolve_status(None) == 200

    @pytest.mark.parametrize("value,expected", [
        ("404", 404),
        ("201", 201),
        (" 503 ", 503),
        ("100", 100),
        ("999", 999),
        ("299", 299),
    ])
    def test_valid_values(self, value: str, expected: int):
        assert resolve_status(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "99", "1000", "-404", "4o4", "404.0", "٤٠٤", "+404"])
    def test_invalid_values_fall_back_to_200(self, value: str):
        assert resolve_status(value) == 200


class TestResolveBody:
    """Tests for resolve_body()."""

    def test_request_body_by_default(self):
        assert resolve_body(None, b"hello") == "hello"

    def test_invalid_utf8_is_replaced(self):
        assert resolve_body(None, b"caf\xe9") == "caf\ufffd"

    def test_override_wins(self):
        assert resolve_body("override", b"ignored") == "override"

    def test_empty_override_means_empty_body(self):
        assert resolve_body("", b"hello") == ""

    def test_override_bytes_read_as_utf8(self):
        """Header text arrives as ISO-8859-1; the raw bytes are UTF-8."""
        wire_value = "héllo".encode("utf-8").decode("iso-8859-1")

        assert resolve_body(wire_value, b"") == "héllo"

    def test_override_beyond_latin1_used_as_is(self):
        assert resolve_body("日本", b"") == "日本"


class TestResolve:
    """Tests for resolve()."""

    def test_both_overrides(self):
        headers = [("internal.status-code", "404"), ("internal.response-body", "gone")]

        assert resolve(headers, b"hello") == Resolution(status=404, body="gone")

    def test_no_overrides(self):
        assert resolve([("X-Test", "a")], b"hello") == Resolution(status=200, body="hello")

    def test_header_names_are_case_insensitive(self):
        headers = [("Internal.Status-Code", "418")]

        assert resolve(headers, b"").status == 418

    def test_first_occurrence_wins(self):
        headers = [("internal.status-code", "404"), ("internal.status-code", "500")]

        assert resolve(headers, b"").status == 404

    def test_is_pure(self):
        headers = [("internal.status-code", "bogus"), ("X", "1")]

        assert resolve(headers, b"x") == resolve(headers, b"x")
