"""
=============================================================================
CONNECTION CONTEXT
=============================================================================

A ``Conn`` is everything the service knows about one request while it is
being answered. It is created fresh per request, flows through the pipeline,
the router and the update loop, and is dropped once the response is out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Conn                                                               │
    │                                                                      │
    │   id        "3f2a9c1e"          correlates interop results           │
    │   config    AppConfig           shared, frozen                       │
    │   request   HTTPRequest         method, path, headers, query         │
    │   route     Route               Home / Quote / Number / Buggy / ...  │
    │   model     Model               request-scoped state (quotes)        │
    │   response  HTTPResponse        pending until respond()              │
    │   sent      bool                flips once, never back               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SEND-ONCE
=============================================================================

The first ``respond`` wins. Every later ``respond`` (and every header write)
on a sent conn is ignored:

    conn.respond(401, "Authorization header not provided")
    conn.respond(200, "ok")           # no-op, still 401
    conn.set_header("X-Late", "1")    # no-op

This is what lets the pipeline short-circuit: a step that answers simply
responds, and nothing downstream can undo it.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional
import logging
import uuid

from .config import AppConfig
from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger(__name__)


@dataclass
class Model:
    """Request-scoped state. Owned by exactly one Conn."""

    quotes: List[str] = field(default_factory=list)


@dataclass
class Conn:
    """
    Per-request mutable context.

    Handlers read ``request``/``route``/``config``, write ``model``, and
    finish by calling one of the ``respond*`` methods.
    """

    request: HTTPRequest
    route: Any
    config: AppConfig = field(default_factory=AppConfig)
    model: Model = field(default_factory=Model)
    response: HTTPResponse = field(default_factory=HTTPResponse)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    _sent: bool = field(default=False, repr=False)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def is_sent(self) -> bool:
        return self._sent

    def header(self, name: str) -> Optional[str]:
        """Request header lookup (case-insensitive)."""
        return self.request.get_header(name)

    def set_header(self, name: str, value: str) -> "Conn":
        """Set a header on the pending response. Ignored once sent."""
        if self._sent:
            logger.debug(f"[{self.id}] ignoring header {name} on sent response")
            return self
        self.response.set_header(name, value)
        return self

    def respond(self, status: int, body: Any = "", json: bool = False) -> "Conn":
        """
        Set status and body and mark the response sent.

        ``body`` is sent as text unless ``json`` is True, in which case it
        is JSON-encoded. A conn that is already sent is left untouched.
        """
        if self._sent:
            logger.debug(
                f"[{self.id}] response already sent ({int(self.response.status)}), "
                f"ignoring respond({status})"
            )
            return self

        self.response.status = status
        if json:
            self.response.set_json(body)
        elif body:
            self.response.set_text(body)
        self._sent = True
        return self

    def respond_text(self, status: int, text: str) -> "Conn":
        return self.respond(status, text)

    def respond_json(self, status: int, data: Any) -> "Conn":
        return self.respond(status, data, json=True)
