"""
=============================================================================
RESPONSE BODY VARIANTS
=============================================================================

Middleware can hand the response almost anything as a body. Rather than
sprinkling isinstance() checks through the response code, every value is
first classified into exactly one of five shapes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        BODY CLASSIFICATION                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Python value                     Variant                          │
    │   ────────────                     ───────                          │
    │   None                      ──►    EmptyBody                        │
    │   str                       ──►    TextBody                         │
    │   bytes / bytearray /       ──►    BytesBody                        │
    │   memoryview                                                         │
    │   object with .read()       ──►    StreamBody                       │
    │   Mapping (dict, ...)       ──►    StructuredBody                   │
    │   anything else             ──►    TypeError                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Response.set_body() then switches over the variant and applies the
status / header side effects for that shape. The set of variants is
closed: adding a shape means adding a class here AND a branch there.

Order matters in classify(): str and bytes are checked before the
"has .read()" test, and Mapping is checked last.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, BinaryIO, Mapping, Union
import json
import re

from ..errors import BodyEncodingFailure


# Leading whitespace followed by "<" means the text is treated as HTML.
# Whitespace set matches \s in most regex dialects: space, \f, \n, \r, \t, \v
HTML_PATTERN = re.compile(r"^[ \f\n\r\t\v]*<")


@dataclass(frozen=True)
class EmptyBody:
    """No body at all."""


@dataclass(frozen=True)
class TextBody:
    text: str

    @property
    def is_html(self) -> bool:
        return HTML_PATTERN.match(self.text) is not None

    def encode(self) -> bytes:
        return self.text.encode("utf-8")


@dataclass(frozen=True)
class BytesBody:
    data: bytes


@dataclass(frozen=True)
class StreamBody:
    """
    A readable byte stream (file, BytesIO, socket file, ...).

    The stream is drained completely by drain(); length is unknown until
    that happens.
    """

    stream: BinaryIO

    def drain(self) -> bytes:
        """
        Read the entire stream into memory.

        Raises:
            BodyEncodingFailure: If reading fails or the stream yields
                                 something other than bytes.
        """
        try:
            data = self.stream.read()
        except (OSError, ValueError) as e:
            # ValueError: read() on a closed file
            raise BodyEncodingFailure(f"Failed to read body stream: {e}", kind="io") from e

        if data is None:
            # Non-blocking stream with nothing available
            return b""
        if isinstance(data, (bytearray, memoryview)):
            return bytes(data)
        if not isinstance(data, bytes):
            raise BodyEncodingFailure(
                f"Body stream returned {type(data).__name__}, expected bytes",
                kind="io",
            )
        return data


@dataclass(frozen=True)
class StructuredBody:
    """A key/value object serialized as JSON."""

    mapping: Mapping[str, Any]

    def encode(self) -> bytes:
        """
        Serialize to the canonical JSON encoding.

        Canonical here means: keys sorted, no insignificant whitespace,
        UTF-8. Two equal mappings always produce identical bytes.

        Raises:
            BodyEncodingFailure: If the mapping holds values JSON can't
                                 represent (sets, arbitrary objects).
        """
        try:
            text = json.dumps(
                dict(self.mapping),
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
            )
        except (TypeError, ValueError) as e:
            raise BodyEncodingFailure(f"Failed to serialize body as JSON: {e}", kind="json") from e
        return text.encode("utf-8")


Body = Union[EmptyBody, TextBody, BytesBody, StreamBody, StructuredBody]

_VARIANTS = (EmptyBody, TextBody, BytesBody, StreamBody, StructuredBody)


def classify(value: Any) -> Body:
    """
    Classify an arbitrary value into a body variant.

    Args:
        value: None, str, bytes-like, readable stream, mapping, or an
               already-classified variant (returned unchanged).

    Returns:
        The matching Body variant.

    Raises:
        TypeError: If the value has none of the supported shapes.
    """
    if isinstance(value, _VARIANTS):
        return value
    if value is None:
        return EmptyBody()
    if isinstance(value, str):
        return TextBody(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if callable(getattr(value, "read", None)):
        return StreamBody(value)
    if isinstance(value, Mapping):
        return StructuredBody(value)

    raise TypeError(
        f"Unsupported body type {type(value).__name__}: expected None, str, "
        f"bytes, a readable stream or a mapping"
    )
