"""
=============================================================================
HTTP REQUEST
=============================================================================

The request half of a connection, as handed to us by the transport.
Parsing the wire format is the transport's job (``http.server``); this module
only normalizes what it gives us:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /quote/en?all=1 HTTP/1.1        HTTPRequest(                   │
    │   Host: localhost:8080          ───►     method="GET",               │
    │   Authorization: Bearer s3cret           path="/quote/en",           │
    │                                          query_params={"all": ["1"]},│
    │                                          headers={"host": ..., ...}, │
    │                                       )                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header names are stored lowercase (HTTP headers are case-insensitive), and
the query string is parsed into a dict of lists in first-seen key order.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse


@dataclass
class HTTPRequest:
    """
    Represents a received HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Uppercase HTTP method (GET, POST, ...)
        path:           Request path without the query string
        headers:        Header name (lowercase) → value
        query_params:   "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}
        body:           Raw body bytes
        client_address: (ip, port) of the client, for access logs

    =========================================================================
    """

    method: str
    path: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list] = field(default_factory=dict)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @classmethod
    def from_target(
        cls,
        method: str,
        target: str,
        headers: Optional[Iterable[Tuple[str, str]]] = None,
        body: bytes = b"",
        client_address: Tuple[str, int] = ("", 0),
    ) -> "HTTPRequest":
        """
        Build a request from a request target such as ``/quote/en?all=1``.

        Repeated headers are joined with ", " as RFC 7230 allows.
        """
        parsed = urlparse(target)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        merged: Dict[str, str] = {}
        for name, value in headers or ():
            name = name.lower()
            if name in merged:
                merged[name] = f"{merged[name]}, {value}"
            else:
                merged[name] = value

        return cls(
            method=method,
            path=path,
            headers=merged,
            query_params=query_params,
            body=body,
            client_address=client_address,
        )

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def has_query(self, name: str) -> bool:
        """True if the key appears in the query string, even with no value."""
        return name in self.query_params
