"""
=============================================================================
RUNTIME
=============================================================================

The runtime owns the connection lifecycle. It is the part a serverless
framework would normally provide: it creates a Conn per request, runs the
application, parks the conn while interop calls are in flight, and resumes
exactly that conn when each result arrives.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    Received
       │ app.init (pipeline, router)
       ├───────────────────────────────► Responded
       ▼
    AwaitingInterop ◄────────┐
       │ result arrives      │ update issued more commands
       │ app.update          │
       ├─────────────────────┘
       └───────────────────────────────► Responded

Responded is the only terminal state. There is no timeout and no
cancellation: a call whose result never comes back leaves its conn parked,
and a conn left with no response and no calls in flight is logged as
stranded.

=============================================================================
CORRELATION
=============================================================================

    _parked:  conn id  →  _Parked(conn, pending, outstanding calls)
    _calls:   call id  →  (conn id, command)

A worker running call 17 looks up its conn id, turns the host's answer into
a message, and calls ``resume(conn_id, msg)``. Only that conn's state is
touched. Updates for one conn are serialized by the conn's own lock;
different conns never share a lock while application code runs.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import itertools
import logging
import threading
import time

from .app import Application
from .conn import Conn
from .core.thread_pool import ThreadPool
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .http.status_codes import HTTPStatus
from .interop import INTEROP_CALLS, Command, InteropHost
from .messages import InteropFailed


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("quoted.access")


@dataclass
class RequestLog:
    """One access log entry, written when a conn reaches Responded."""

    request_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    interop_calls: int

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} [{self.request_id}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms calls={self.interop_calls}'
        )


class PendingResponse:
    """
    The eventual response for one submitted request.

    Resolved exactly once, when its conn reaches Responded.
    """

    def __init__(self, conn_id: str):
        self.conn_id = conn_id
        self._event = threading.Event()
        self._response: Optional[HTTPResponse] = None

    @property
    def done(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> Optional[HTTPResponse]:
        """Block until responded. Returns None if ``timeout`` elapses first."""
        if not self._event.wait(timeout):
            return None
        return self._response

    def _resolve(self, response: HTTPResponse) -> None:
        self._response = response
        self._event.set()


@dataclass
class _Parked:
    conn: Conn
    pending: PendingResponse
    started_at: float = field(default_factory=time.time)
    outstanding: int = 0
    issued: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


class Runtime:
    """
    Drives requests through an Application and its interop calls.

    With a ThreadPool, interop calls run on worker threads. Without one,
    each call runs inline on the thread that issued it, which makes unit
    tests deterministic.

    Usage:
        runtime = Runtime(app, default_host(app.config), ThreadPool())
        runtime.start()
        response = runtime.handle(HTTPRequest("GET", "/number"))
        runtime.shutdown()
    """

    def __init__(self, app: Application, host: InteropHost, pool: Optional[ThreadPool] = None):
        self.app = app
        self.host = host
        self._pool = pool

        self._lock = threading.Lock()
        self._parked: Dict[str, _Parked] = {}
        self._calls: Dict[int, Tuple[str, Command]] = {}
        self._call_ids = itertools.count(1)

        for name in self.unhandled_calls():
            logger.warning(f"Interop host has no function for {name}; its commands will fail")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> "Runtime":
        if self._pool is not None:
            self._pool.start()
        return self

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True, timeout=timeout)

        with self._lock:
            if self._parked:
                logger.warning(f"Shutting down with {len(self._parked)} unresponded connection(s)")

    def __enter__(self) -> "Runtime":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def unhandled_calls(self) -> List[str]:
        """Declared interop calls the host cannot answer."""
        return [call.name for call in INTEROP_CALLS if not self.host.handles(call.name)]

    @property
    def parked(self) -> List[str]:
        """Ids of conns still waiting for a response."""
        with self._lock:
            return list(self._parked)

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def submit(self, request: HTTPRequest) -> PendingResponse:
        """Start processing a request and return its pending response."""
        conn = self.app.new_conn(request)
        parked = _Parked(conn=conn, pending=PendingResponse(conn.id))

        with parked.lock:
            with self._lock:
                self._parked[conn.id] = parked

            logger.debug(f"[{conn.id}] received {request.method} {request.path}")
            commands = self._guard(parked, self.app.init, conn)
            self._advance(parked, commands)

        return parked.pending

    def handle(self, request: HTTPRequest, timeout: Optional[float] = None) -> Optional[HTTPResponse]:
        """
        Process a request and block until it is responded.

        Waits forever by default. Returns None if ``timeout`` elapses.
        """
        return self.submit(request).wait(timeout)

    def resume(self, conn_id: str, msg: Any) -> bool:
        """
        Deliver one interop result to its conn.

        Returns False if the conn is no longer parked (already responded).
        """
        with self._lock:
            parked = self._parked.get(conn_id)

        if parked is None:
            logger.debug(f"[{conn_id}] dropping {type(msg).__name__} for finished connection")
            return False

        with parked.lock:
            parked.outstanding -= 1
            commands = self._guard(parked, self.app.update, msg, parked.conn)
            self._advance(parked, commands)
        return True

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _guard(self, parked: _Parked, func, *args) -> List[Command]:
        """Run application code; an exception answers 500 instead of stranding."""
        try:
            return func(*args)
        except Exception:
            logger.exception(f"[{parked.conn.id}] unhandled error in {func.__name__}")
            parked.conn.respond(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")
            return []

    def _advance(self, parked: _Parked, commands: List[Command]) -> None:
        conn = parked.conn

        if conn.is_sent:
            if commands:
                logger.debug(f"[{conn.id}] discarding {len(commands)} command(s) issued after respond")
            self._finish(parked)
            return

        if not commands and parked.outstanding == 0:
            logger.warning(
                f"[{conn.id}] {conn.method} {conn.request.path} has no response "
                f"and no interop calls in flight"
            )
            return

        for command in commands:
            self._issue(parked, command)

    def _issue(self, parked: _Parked, command: Command) -> None:
        call_id = next(self._call_ids)
        parked.outstanding += 1
        parked.issued += 1

        with self._lock:
            self._calls[call_id] = (parked.conn.id, command)

        logger.debug(f"[{parked.conn.id}] issued {command.name} as call {call_id}")

        if self._pool is None:
            self._run_call(call_id)
        else:
            self._pool.submit(self._run_call, args=(call_id,))

    def _run_call(self, call_id: int) -> None:
        with self._lock:
            conn_id, command = self._calls.pop(call_id)

        try:
            msg = command.resolve(self.host.invoke(command))
        except Exception as e:
            # host functions are arbitrary code; any failure becomes a message
            logger.warning(f"[{conn_id}] call {call_id} ({command.name}) failed: {e}")
            msg = InteropFailed(call=command.name, reason=f"{type(e).__name__}: {e}")

        self.resume(conn_id, msg)

    def _finish(self, parked: _Parked) -> None:
        conn = parked.conn

        with self._lock:
            if self._parked.pop(conn.id, None) is None:
                return

        entry = RequestLog(
            request_id=conn.id,
            method=conn.method,
            path=conn.request.path,
            client_ip=conn.request.client_address[0],
            status_code=int(conn.response.status),
            content_length=len(conn.response.body),
            duration_ms=(time.time() - parked.started_at) * 1000,
            interop_calls=parked.issued,
        )
        access_logger.info(entry.to_text())

        parked.pending._resolve(conn.response)
