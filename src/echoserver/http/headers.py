"""
=============================================================================
HTTP HEADER MULTIMAP
=============================================================================

An ordered, case-insensitive multimap for HTTP header fields.

=============================================================================
WHY NOT A DICT?
=============================================================================

A plain dict loses two things an echo server must keep:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHAT A DICT THROWS AWAY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request:                     dict(lowercased):                    │
    │                                                                      │
    │     X-Trace: a                   {"x-trace": "b",                   │
    │     Content-Type: text/plain      "content-type": "text/plain"}     │
    │     X-Trace: b                                                      │
    │                                                                      │
    │   1. REPETITION - the first X-Trace is gone                         │
    │   2. CASING     - "X-Trace" became "x-trace"                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers stores every field as a (name, value) pair in arrival order with
the name exactly as the client wrote it. Lookups compare lowercase names,
since RFC 7230 says field names are case-insensitive.

    headers = Headers([("X-Trace", "a"), ("X-Trace", "b")])
    headers.get("x-trace")        # "a" (first value)
    headers.get_all("X-TRACE")    # ["a", "b"]
    list(headers.items())         # [("X-Trace", "a"), ("X-Trace", "b")]

=============================================================================
"""

from typing import Iterable, Iterator, List, Optional, Tuple


class Headers:
    """
    Ordered header multimap with case-insensitive lookup.

    Field names keep their original casing for output; every lookup
    uses the lowercase form.
    """

    def __init__(self, fields: Optional[Iterable[Tuple[str, str]]] = None):
        self._fields: List[Tuple[str, str]] = []
        if fields:
            for name, value in fields:
                self.add(name, value)

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, name: str, value: str) -> "Headers":
        """Append a field, keeping any existing fields with the same name."""
        self._fields.append((name, value))
        return self

    def set(self, name: str, value: str) -> "Headers":
        """
        Replace every field named `name` with a single field.

        The new field takes the position of the first removed one, or goes
        at the end when the name was absent.
        """
        key = name.lower()
        replaced = False
        fields = []
        for existing_name, existing_value in self._fields:
            if existing_name.lower() != key:
                fields.append((existing_name, existing_value))
            elif not replaced:
                fields.append((name, value))
                replaced = True
        if not replaced:
            fields.append((name, value))
        self._fields = fields
        return self

    def setdefault(self, name: str, value: str) -> str:
        """Add the field only if no field with that name exists."""
        existing = self.get(name)
        if existing is not None:
            return existing
        self.add(name, value)
        return value

    def remove(self, name: str) -> None:
        """Drop every field named `name` (no error if absent)."""
        key = name.lower()
        self._fields = [(n, v) for n, v in self._fields if n.lower() != key]

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value for `name`, or `default`."""
        key = name.lower()
        for field_name, value in self._fields:
            if field_name.lower() == key:
                return value
        return default

    def get_all(self, name: str) -> List[str]:
        """Return every value for `name` in arrival order."""
        key = name.lower()
        return [value for field_name, value in self._fields if field_name.lower() == key]

    def get_joined(self, name: str, default: str = "") -> str:
        """
        Return all values for `name` joined with ", ".

        This is the RFC 7230 combination rule for list-valued fields
        ("Accept: a" + "Accept: b" == "Accept: a, b").
        """
        values = self.get_all(name)
        return ", ".join(values) if values else default

    def items(self) -> List[Tuple[str, str]]:
        """Return (name, value) pairs with original casing, in order."""
        return list(self._fields)

    def copy(self) -> "Headers":
        return Headers(self._fields)

    # =========================================================================
    # PROTOCOL METHODS
    # =========================================================================

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._fields))

    def __len__(self) -> int:
        return len(self._fields)

    def __bool__(self) -> bool:
        return bool(self._fields)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._fields == other._fields
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self._fields!r})"
