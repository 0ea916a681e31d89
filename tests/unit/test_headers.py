"""
Unit tests for the header table.
"""

import pytest

from httpmessage.errors import HeaderNotFoundError, RequestError
from httpmessage.http.headers import HeaderTable


class TestHeaderLookup:
    """Tests for case-insensitive, multi-valued lookup."""

    def test_lookup_ignores_case(self):
        """Any casing of a name finds the same header."""
        headers = HeaderTable([("Content-Type", "text/plain")])

        assert headers.has("content-type")
        assert headers.has("CONTENT-TYPE")
        assert headers.get("cOnTeNt-TyPe") == "text/plain"

    def test_repeated_lines_kept_in_order(self):
        """Repeated header lines become multiple values, never merged."""
        headers = HeaderTable([
            ("Accept", "text/html"),
            ("X-Other", "1"),
            ("accept", "application/json"),
        ])

        assert headers.get("ACCEPT") == "text/html"
        assert headers.get_all("accept") == ["text/html", "application/json"]

    def test_duplicate_values_not_deduplicated(self):
        headers = HeaderTable([("X-Tag", "a"), ("X-Tag", "a")])

        assert headers.get_all("x-tag") == ["a", "a"]

    def test_missing_header_raises(self):
        """get() on an absent header raises HeaderNotFoundError."""
        headers = HeaderTable()

        with pytest.raises(HeaderNotFoundError) as exc_info:
            headers.get("X-Missing")

        assert exc_info.value.name == "X-Missing"
        assert isinstance(exc_info.value, RequestError)
        assert isinstance(exc_info.value, KeyError)

    def test_get_first_default(self):
        headers = HeaderTable()

        assert headers.get_first("Host") is None
        assert headers.get_first("Host", "localhost") == "localhost"

    def test_get_all_returns_copy(self):
        """Mutating the returned list does not touch the table."""
        headers = HeaderTable([("Accept", "a")])

        values = headers.get_all("Accept")
        values.append("b")

        assert headers.get_all("Accept") == ["a"]


class TestHeaderNames:
    """Tests for name ordering and casing."""

    def test_names_first_seen_order_with_original_casing(self):
        headers = HeaderTable([
            ("Host", "example.com"),
            ("X-Trace", "1"),
            ("host", "other"),
            ("Accept", "*/*"),
        ])

        assert headers.names() == ["Host", "X-Trace", "Accept"]
        assert list(headers) == ["Host", "X-Trace", "Accept"]
        assert len(headers) == 3

    def test_set_replaces_values(self):
        """set() leaves exactly one value."""
        headers = HeaderTable([("Accept", "a"), ("Accept", "b")])

        headers.set("accept", "c")

        assert headers.get_all("Accept") == ["c"]

    def test_set_keeps_position(self):
        headers = HeaderTable([("A", "1"), ("B", "2")])

        headers.set("A", "3")

        assert headers.names() == ["A", "B"]

    def test_add_appends(self):
        headers = HeaderTable([("Accept", "a")])

        headers.add("ACCEPT", "b")
        headers.add("X-New", "c")

        assert headers.get_all("accept") == ["a", "b"]
        assert headers.names() == ["Accept", "X-New"]

    def test_remove_and_clear(self):
        headers = HeaderTable([("A", "1"), ("B", "2")])

        headers.remove("a")
        headers.remove("not-there")

        assert not headers.has("A")
        assert headers.names() == ["B"]

        headers.clear()
        assert len(headers) == 0


class TestHeaderProtocol:
    """Tests for iteration helpers and equality."""

    def test_items_one_pair_per_value(self):
        headers = HeaderTable([("Accept", "a"), ("Host", "h"), ("accept", "b")])

        assert list(headers.items()) == [
            ("Accept", "a"),
            ("Accept", "b"),
            ("Host", "h"),
        ]

    def test_copy_is_independent(self):
        original = HeaderTable([("A", "1")])
        copy = original.copy()
        copy.add("A", "2")

        assert original.get_all("A") == ["1"]
        assert copy == HeaderTable([("A", "1"), ("A", "2")])

    def test_contains(self):
        headers = HeaderTable.from_dict({"Content-Length": "0"})

        assert "content-length" in headers
        assert "Host" not in headers
        assert 42 not in headers
