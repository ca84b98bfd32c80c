"""
=============================================================================
CORS STEP
=============================================================================

Adds CORS headers to the pending response and answers preflight requests.

    SIMPLE REQUEST (GET /number, Origin: https://app.example.com)

        Access-Control-Allow-Origin: *        (or the echoed origin)
        Access-Control-Allow-Methods: GET, POST, ...
        Vary: Origin

    PREFLIGHT (OPTIONS, Access-Control-Request-Method: POST)

        204 No Content, plus the headers above and
        Access-Control-Allow-Headers, Access-Control-Max-Age

The CORS step belongs BEFORE the auth step: browsers never send
credentials on a preflight, so a preflight that reached auth would be
rejected with 401 and the real request would never be attempted.

=============================================================================
"""

from typing import Optional

from .base import Step
from ..config import CORSConfig
from ..conn import Conn
from ..http.status_codes import HTTPStatus


class CORSStep(Step):
    """
    CORS handling as a pipeline step.

    Usage:
        pipeline.add(CORSStep())                                   # allow all
        pipeline.add(CORSStep(CORSConfig(allow_origins=("https://app.com",))))
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, conn: Conn) -> Conn:
        origin = conn.header("origin") or ""

        self._add_cors_headers(conn, origin)

        if conn.method == "OPTIONS":
            return self._handle_preflight(conn)

        return conn

    def _handle_preflight(self, conn: Conn) -> Conn:
        """Answer a preflight with 204 and the allow/max-age headers."""
        if conn.header("access-control-request-headers"):
            conn.set_header("Access-Control-Allow-Headers", ", ".join(self.config.allow_headers))

        conn.set_header("Access-Control-Max-Age", str(self.config.max_age))

        return conn.respond(HTTPStatus.NO_CONTENT)

    def _add_cors_headers(self, conn: Conn, origin: str) -> None:
        """
        ``*`` in allow_origins answers ``*``; otherwise the request origin is
        echoed back only if it is listed. Unlisted origins get no CORS headers.
        """
        if "*" in self.config.allow_origins:
            allowed_origin = "*"
        elif origin in self.config.allow_origins:
            allowed_origin = origin
        else:
            return

        conn.set_header("Access-Control-Allow-Origin", allowed_origin)
        conn.set_header("Access-Control-Allow-Methods", ", ".join(self.config.allow_methods))

        vary = conn.response.headers.get("Vary", "")
        if "Origin" not in vary:
            conn.set_header("Vary", f"{vary}, Origin".lstrip(", "))
