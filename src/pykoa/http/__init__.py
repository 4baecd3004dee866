"""
=============================================================================
HTTP LAYER
=============================================================================

The request/response views middleware works with, and the pieces they
are built from:

    status_codes    HTTPStatus enum and the empty-status set
    headers         HeaderStore capability + case-insensitive Headers
    body            Closed set of body variants and classify()
    request         Request view (method, url, headers, proxy-aware ip)
    response        Response view (status, body coercion, headers)

Nothing in this package touches sockets; that lives in pykoa.transport.

=============================================================================
"""

from .status_codes import HTTPStatus, EMPTY_STATUSES, is_empty_status, reason_phrase
from .headers import HeaderStore, Headers, canonical_name
from .body import (
    Body,
    EmptyBody,
    TextBody,
    BytesBody,
    StreamBody,
    StructuredBody,
    classify,
)
from .request import Request
from .response import Response

__all__ = [
    # Status codes
    "HTTPStatus",
    "EMPTY_STATUSES",
    "is_empty_status",
    "reason_phrase",

    # Headers
    "HeaderStore",
    "Headers",
    "canonical_name",

    # Body variants
    "Body",
    "EmptyBody",
    "TextBody",
    "BytesBody",
    "StreamBody",
    "StructuredBody",
    "classify",

    # Views
    "Request",
    "Response",
]
