"""
Unit tests for the Headers multimap.
"""

import pytest

from echoserver.http.headers import Headers


class TestHeaders:
    """Tests for Headers."""

    def test_lookup_is_case_insensitive(self):
        headers = Headers([("Content-Type", "text/plain")])

        assert headers.get("content-type") == "text/plain"
        assert headers["CONTENT-TYPE"] == "text/plain"
        assert "content-TYPE" in headers

    def test_original_casing_and_order_kept(self):
        headers = Headers([("X-B", "1"), ("x-a", "2"), ("X-C", "3")])

        assert headers.items() == [("X-B", "1"), ("x-a", "2"), ("X-C", "3")]
        assert list(headers) == headers.items()

    def test_repeated_fields_kept(self):
        headers = Headers([("X-Test", "a"), ("Other", "x"), ("x-test", "b")])

        assert headers.get("x-test") == "a"
        assert headers.get_all("X-TEST") == ["a", "b"]
        assert headers.get_joined("x-test") == "a, b"
        assert len(headers) == 3

    def test_missing_header(self):
        headers = Headers()

        assert headers.get("X-Missing") is None
        assert headers.get("X-Missing", "default") == "default"
        assert headers.get_all("X-Missing") == []
        assert not headers
        with pytest.raises(KeyError):
            headers["X-Missing"]

    def test_set_replaces_in_place(self):
        headers = Headers([("A", "1"), ("X", "old"), ("B", "2"), ("x", "older")])
        headers.set("X", "new")

        assert headers.items() == [("A", "1"), ("X", "new"), ("B", "2")]

    def test_set_appends_when_absent(self):
        headers = Headers([("A", "1")])
        headers["B"] = "2"

        assert headers.items() == [("A", "1"), ("B", "2")]

    def test_setdefault_keeps_existing(self):
        headers = Headers([("Date", "client-date")])

        assert headers.setdefault("date", "server-date") == "client-date"
        assert headers.setdefault("Server", "EchoServer/1.0") == "EchoServer/1.0"
        assert headers.get_all("date") == ["client-date"]

    def test_remove(self):
        headers = Headers([("A", "1"), ("a", "2"), ("B", "3")])
        headers.remove("A")
        headers.remove("missing")

        assert headers.items() == [("B", "3")]

    def test_copy_is_independent(self):
        original = Headers([("A", "1")])
        copy = original.copy()
        copy.add("B", "2")

        assert len(original) == 1
        assert copy != original
        assert copy.copy() == copy
