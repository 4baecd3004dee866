"""
=============================================================================
HEADER STORAGE
=============================================================================

The framework core never touches a concrete header representation. It
talks to the transport through a narrow capability:

    get(name)           value or None
    has(name)           bool
    set(name, value)    replace any existing value
    delete(name)        remove if present (no error when missing)

Any transport that provides those four operations can back the Request
and Response views. Headers below is the implementation the bundled
transport and the in-memory recorder use.

=============================================================================
CASE INSENSITIVITY
=============================================================================

HTTP header names are case-insensitive (RFC 7230 section 3.2):

    "Content-Type", "content-type" and "CONTENT-TYPE" are the same header.

Headers stores entries keyed by the lowercased name but remembers the
canonical spelling ("Content-Type") for serialization, so what goes out
on the wire looks the way people expect.

=============================================================================
"""

from typing import Dict, Iterable, Iterator, MutableMapping, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class HeaderStore(Protocol):
    """The four header operations the framework relies on."""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        ...

    def has(self, name: str) -> bool:
        ...

    def set(self, name: str, value: str) -> None:
        ...

    def delete(self, name: str) -> None:
        ...


def canonical_name(name: str) -> str:
    """
    Canonicalize a header name: "content-type" -> "Content-Type".

    Same rule as most HTTP stacks use: first letter and every letter after
    a hyphen upper-cased, everything else lower-cased.
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.strip().split("-"))


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, single-valued header map.

    Usage:
        headers = Headers({"content-type": "text"})
        headers.get("Content-Type")     # "text"
        headers.has("CONTENT-TYPE")     # True
        headers.set("X-Request-ID", "abc")
        headers.delete("content-type")

    Also behaves as a regular MutableMapping, so `headers["Host"]`,
    `"host" in headers` and `dict(headers.items())` all work.
    """

    def __init__(self, initial: Optional[Iterable[Tuple[str, str]]] = None):
        # lowercased name -> (canonical name, value)
        self._entries: Dict[str, Tuple[str, str]] = {}
        if initial is not None:
            items = initial.items() if hasattr(initial, "items") else initial
            for name, value in items:
                self.set(name, value)

    # ─────────────────────────────────────────────────────────────────────
    # HeaderStore capability
    # ─────────────────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        return name.lower() in self._entries

    def set(self, name: str, value: str) -> None:
        self._entries[name.lower()] = (canonical_name(name), str(value))

    def delete(self, name: str) -> None:
        self._entries.pop(name.lower(), None)

    def add(self, name: str, value: str) -> None:
        """Append to an existing header with ", " (RFC 7230 list syntax)."""
        existing = self.get(name)
        if existing is None:
            self.set(name, value)
        else:
            self.set(name, f"{existing}, {value}")

    # ─────────────────────────────────────────────────────────────────────
    # MutableMapping protocol
    # ─────────────────────────────────────────────────────────────────────

    def __getitem__(self, name: str) -> str:
        return self._entries[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        del self._entries[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        for canonical, _ in self._entries.values():
            yield canonical

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"
