"""
=============================================================================
ROUTER
=============================================================================

Dispatches a conn that survived the pipeline to the handler registered for
its (method, route variant) pair.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          DISPATCH ORDER                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   conn: GET Quote(lang="en")                                         │
    │                                                                      │
    │   1. exact       ("GET", Quote)   registered?  ──► call it           │
    │   2. any method  (None,  Quote)   registered?  ──► call it           │
    │   3. fallback    405 "Method not supported"                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A handler either responds on the conn (synchronous) or returns commands and
leaves the conn unsent (deferred: an interop result will finish it).

    @router.get(Buggy)
    def buggy(conn):
        conn.respond(500, "bugs, bugs, bugs")
        return []

    @router.get(Number)
    def number(conn):
        return [GET_RANDOM.request(1_000_000_000, RandomNumber)]

=============================================================================
EXHAUSTIVENESS
=============================================================================

Routes form a closed set, so a variant with no handler at all is a wiring
mistake, not a runtime condition. ``check_exhaustive`` raises RouterError
at startup if any variant of the set is left without a handler (for
some method); the 405 fallback still covers unlisted methods.

=============================================================================
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple
import logging

from .conn import Conn
from .http.status_codes import HTTPStatus
from .interop import Command


logger = logging.getLogger(__name__)


Commands = List[Command]
Handler = Callable[[Conn], Optional[Commands]]

METHOD_NOT_SUPPORTED = "Method not supported"


class RouterError(Exception):
    """Raised for wiring mistakes: missing handlers, duplicate registrations."""


def method_not_supported(conn: Conn) -> Commands:
    """Default fallback: 405 with a fixed text body."""
    conn.respond(HTTPStatus.METHOD_NOT_ALLOWED, METHOD_NOT_SUPPORTED)
    return []


class Router:
    """
    (method, route variant) → handler table with a fallback.

    ``method=None`` registers a handler for every method of a variant; an
    exact method registration for the same variant takes precedence.
    """

    def __init__(self, fallback: Handler = method_not_supported):
        self._handlers: Dict[Tuple[Optional[str], type], Handler] = {}
        self._fallback = fallback

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add(self, method: Optional[str], variant: type, handler: Handler) -> None:
        key = (method.upper() if method else None, variant)
        if key in self._handlers:
            raise RouterError(f"handler already registered for {key[0] or 'ANY'} {variant.__name__}")
        self._handlers[key] = handler

    def route(self, variant: type, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        """
        Decorator for registering handlers.

        Usage:
            @router.route(Quote)          # any method
            def quote(conn): ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add(method, variant, handler)
            return handler
        return decorator

    def get(self, variant: type) -> Callable[[Handler], Handler]:
        """Register a GET handler."""
        return self.route(variant, "GET")

    def post(self, variant: type) -> Callable[[Handler], Handler]:
        """Register a POST handler."""
        return self.route(variant, "POST")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def lookup(self, method: str, variant: type) -> Handler:
        """Find the handler for a (method, variant) pair, or the fallback."""
        handler = self._handlers.get((method.upper(), variant))
        if handler is None:
            handler = self._handlers.get((None, variant))
        return handler or self._fallback

    def dispatch(self, conn: Conn) -> Commands:
        """
        Run the handler for the conn's method and route.

        Must only be called on an unsent conn; the pipeline's short-circuit
        is the caller's responsibility.
        """
        handler = self.lookup(conn.method, type(conn.route))
        logger.debug(f"[{conn.id}] {conn.method} {conn.route!r} -> {getattr(handler, '__name__', handler)}")
        return list(handler(conn) or [])

    # =========================================================================
    # EXHAUSTIVENESS
    # =========================================================================

    def unhandled(self, variants: Iterable[type]) -> List[type]:
        """Variants that have no handler registered for any method."""
        handled = {variant for _, variant in self._handlers}
        return [variant for variant in variants if variant not in handled]

    def check_exhaustive(self, variants: Iterable[type], allow: Iterable[type] = ()) -> None:
        """
        Raise RouterError if a variant has no handler.

        ``allow`` lists variants that are deliberately left to the fallback.
        """
        allowed = set(allow)
        missing = [v for v in self.unhandled(variants) if v not in allowed]
        if missing:
            names = ", ".join(v.__name__ for v in missing)
            raise RouterError(f"no handler for route variant(s): {names}")

    def routes(self) -> List[Tuple[str, str]]:
        """(method, variant name) pairs, for the startup banner."""
        return [
            (method or "ANY", variant.__name__)
            for method, variant in self._handlers
        ]
