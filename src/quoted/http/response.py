"""
=============================================================================
HTTP RESPONSE
=============================================================================

The response half of a connection. Every :class:`~quoted.conn.Conn` starts
with an empty pending ``HTTPResponse``; pipeline steps may add headers to it
while it is pending, and exactly one ``respond`` call fills in status and
body and marks it sent.

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    Conn created          steps add headers       respond()            transport
    HTTPResponse()  ───►  Vary, Access-Control ───►  status + body ───►  writes it
    status=200            (still pending)           (sent, frozen)     to socket

Body helpers set the body and the matching Content-Type together:

    response.set_text("bugs, bugs, bugs")   # text/plain; charset=utf-8
    response.set_json(42)                   # application/json; charset=utf-8

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import json

from .status_codes import HTTPStatus


TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    Status, headers and body bytes of one response.

    Header names are stored as given. The transport adds Content-Length,
    Date and Server when it writes the response out.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set one header; chainable."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes], content_type: Optional[str] = None) -> "HTTPResponse":
        """
        Replace the body. ``str`` bodies are UTF-8 encoded; ``content_type``,
        when given, is set alongside.
        """
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        if content_type:
            self.headers["Content-Type"] = content_type
        return self

    def set_text(self, text: str) -> "HTTPResponse":
        return self.set_body(text, TEXT_CONTENT_TYPE)

    def set_json(self, data: Any) -> "HTTPResponse":
        # non-ASCII quotes stay readable; the bytes are still UTF-8
        return self.set_body(json.dumps(data, ensure_ascii=False), JSON_CONTENT_TYPE)
