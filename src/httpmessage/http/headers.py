"""
=============================================================================
HEADER TABLE
=============================================================================

Ordered, case-insensitive multi-map from header name to one or more values.

=============================================================================
WHY NOT A PLAIN DICT?
=============================================================================

A dict of lowercase names (what a quick parser does) loses three things
the request layer needs:

    1. ORIGINAL CASING   "X-Request-ID" should be written back as sent
    2. REPEATED LINES    "Cookie: a=1" + "Cookie: b=2" are two values,
                         not one comma-joined string
    3. VALUE ORDER       values for one name keep their arrival order

Layout:

    ┌──────────────────────────────────────────────────────────────────┐
    │  _entries (dict, insertion ordered)                               │
    ├──────────────────┬───────────────────────────────────────────────┤
    │  lookup key      │  (display name, [values...])                  │
    ├──────────────────┼───────────────────────────────────────────────┤
    │  "content-type"  │  ("Content-Type", ["application/json"])       │
    │  "accept"        │  ("Accept", ["text/html", "*/*"])             │
    │  "x-trace"       │  ("X-Trace", ["abc"])                         │
    └──────────────────┴───────────────────────────────────────────────┘

Because dicts preserve insertion order, iterating the keys gives the
first-seen order of distinct names for free.

=============================================================================
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import HeaderNotFoundError


class HeaderTable:
    """
    Case-insensitive header multi-map.

    Lookups ignore case, output keeps the casing the name was stored with.
    Values are never deduplicated.

    Example:
        headers = HeaderTable([("Accept", "text/html"), ("accept", "*/*")])
        headers.get("ACCEPT")        # "text/html"
        headers.get_all("accept")    # ["text/html", "*/*"]
        headers.names()              # ["Accept"]
    """

    def __init__(self, items: Optional[Iterable[Tuple[str, str]]] = None):
        self._entries: Dict[str, Tuple[str, List[str]]] = {}
        if items is not None:
            for name, value in items:
                self.add(name, value)

    @classmethod
    def from_dict(cls, mapping: Dict[str, str]) -> "HeaderTable":
        """Build a table from a plain name -> value dict."""
        return cls(mapping.items())

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def has(self, name: str) -> bool:
        return name.lower() in self._entries

    def get(self, name: str) -> str:
        """
        Get the first value of a header.

        Raises:
            HeaderNotFoundError: If the header is absent. Check has() first
                                 or use get_first() for a default instead.
        """
        return self.get_all(name)[0]

    def get_all(self, name: str) -> List[str]:
        """
        Get every value of a header, in insertion order.

        Raises:
            HeaderNotFoundError: If the header is absent.
        """
        entry = self._entries.get(name.lower())
        if entry is None:
            raise HeaderNotFoundError(name)
        return list(entry[1])

    def get_first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Non-raising variant of get()."""
        entry = self._entries.get(name.lower())
        return entry[1][0] if entry else default

    def names(self) -> List[str]:
        """Distinct header names in first-seen order, original casing."""
        return [display for display, _ in self._entries.values()]

    # =========================================================================
    # MUTATION
    # =========================================================================

    def set(self, name: str, value: str) -> None:
        """Replace all values of a header with a single value."""
        # Re-assigning an existing key keeps its slot in first-seen order
        self._entries[name.lower()] = (name, [value])

    def add(self, name: str, value: str) -> None:
        """Append a value without touching existing ones."""
        key = name.lower()
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = (name, [value])
        else:
            entry[1].append(value)

    def remove(self, name: str) -> None:
        """Remove every value of a header. Missing headers are ignored."""
        self._entries.pop(name.lower(), None)

    def clear(self) -> None:
        self._entries.clear()

    # =========================================================================
    # PROTOCOL SUPPORT
    # =========================================================================

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (name, value) pairs, one per value, in table order."""
        for display, values in self._entries.values():
            for value in values:
                yield display, value

    def copy(self) -> "HeaderTable":
        return HeaderTable(self.items())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderTable):
            return NotImplemented
        return list(self.items()) == list(other.items())

    def __repr__(self) -> str:
        return f"HeaderTable({list(self.items())!r})"
