"""
=============================================================================
APPLICATION
=============================================================================

The application is three pieces wired together at startup:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   init(conn)                                                         │
    │     │                                                                │
    │     ├── pipeline.run(conn)      cors → auth                          │
    │     │      └── sent? ──────────────────────────────► Responded       │
    │     │                                                                │
    │     └── router.dispatch(conn)                                        │
    │            ├── responded ──────────────────────────► Responded       │
    │            └── commands ───────────────────────────► AwaitingInterop │
    │                                                                      │
    │   update(msg, conn)             once per interop result              │
    │     ├── RandomNumber(v)   ──► 200 JSON v                             │
    │     ├── QuoteMsg(inner)   ──► quote.update(inner) (more commands?)   │
    │     └── InteropFailed     ──► 500                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

``create_app`` is the only place anything is registered. There is no
import-time global registration: build an app, get an app.

=============================================================================
"""

from typing import Any, Callable, Dict, List, Optional
import logging

from . import quote
from .config import AppConfig
from .conn import Conn
from .endpoints import build_router
from .http.request import HTTPRequest
from .http.status_codes import HTTPStatus
from .interop import Command
from .messages import MESSAGE_VARIANTS, InteropFailed, QuoteMsg, RandomNumber
from .middleware import AuthStep, CORSStep, Pipeline
from .router import Router
from .routes import ROUTE_VARIANTS, NotFound, RouteTable, default_route_table


logger = logging.getLogger(__name__)


Commands = List[Command]
UpdateHandler = Callable[[Any, Conn], Commands]


class UnhandledMessageError(TypeError):
    """update() received a message type it has no case for."""


def _on_random_number(msg: RandomNumber, conn: Conn) -> Commands:
    conn.respond_json(HTTPStatus.OK, msg.value)
    return []


def _on_quote_msg(msg: QuoteMsg, conn: Conn) -> Commands:
    return [cmd.map(QuoteMsg) for cmd in quote.update(msg.inner, conn)]


def _on_interop_failed(msg: InteropFailed, conn: Conn) -> Commands:
    logger.error(f"[{conn.id}] interop call {msg.call} failed: {msg.reason}")
    conn.respond(HTTPStatus.INTERNAL_SERVER_ERROR, f"Interop call failed: {msg.call}")
    return []


UPDATES: Dict[type, UpdateHandler] = {
    RandomNumber: _on_random_number,
    QuoteMsg: _on_quote_msg,
    InteropFailed: _on_interop_failed,
}


class Application:
    """
    Pipeline + router + update loop over one immutable config.

    The application holds no per-request state; everything request-scoped
    lives on the Conn, so one instance serves every connection.
    """

    def __init__(
        self,
        config: AppConfig,
        pipeline: Pipeline,
        routes: RouteTable,
        router: Router,
        updates: Optional[Dict[type, UpdateHandler]] = None,
    ):
        self.config = config
        self.pipeline = pipeline
        self.routes = routes
        self.router = router
        self._updates = dict(UPDATES if updates is None else updates)

    def new_conn(self, request: HTTPRequest) -> Conn:
        """Create the context for a freshly received request."""
        route = self.routes.parse(request.path, request.query_params)
        return Conn(request=request, route=route, config=self.config)

    def init(self, conn: Conn) -> Commands:
        """
        Run the pipeline, then the router if the pipeline did not respond.

        Returns the commands the handler issued (empty when it responded).
        """
        conn = self.pipeline.run(conn)
        if conn.is_sent:
            return []
        return self.router.dispatch(conn)

    def update(self, msg: Any, conn: Conn) -> Commands:
        """
        Handle one interop result for ``conn``.

        Raises:
            UnhandledMessageError: If ``msg`` is not a known message type.
        """
        handler = self._updates.get(type(msg))
        if handler is None:
            raise UnhandledMessageError(f"update cannot handle {type(msg).__name__}")
        return list(handler(msg, conn) or [])

    def unhandled_messages(self, variants=MESSAGE_VARIANTS) -> List[type]:
        return [variant for variant in variants if variant not in self._updates]


def create_app(config: Optional[AppConfig] = None) -> Application:
    """
    Build the application: pipeline, route table, router, update table.

    Raises:
        RouterError: If a route variant has no handler.
        UnhandledMessageError: If a message variant has no update case.
    """
    config = config or AppConfig()

    pipeline = Pipeline().use(
        CORSStep(config.cors),
        AuthStep(config.auth),
    )

    router = build_router()
    # NotFound is answered by the 405 fallback
    router.check_exhaustive(ROUTE_VARIANTS, allow=(NotFound,))

    app = Application(config, pipeline, default_route_table(), router)

    missing = app.unhandled_messages()
    if missing:
        names = ", ".join(v.__name__ for v in missing)
        raise UnhandledMessageError(f"no update case for message(s): {names}")

    return app
