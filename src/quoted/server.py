"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together into a running process.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ThreadingHTTPServer          one thread per request (stdlib)       │
    │          │                                                           │
    │          ▼                                                           │
    │   _RequestHandler              HTTPRequest.from_target(...)          │
    │          │                                                           │
    │          ▼                                                           │
    │   Runtime.handle(request)      blocks until Responded                │
    │          │        │                                                  │
    │          │        └──► ThreadPool ──► InteropHost (interop calls)    │
    │          ▼                                                           │
    │   write status, headers, body                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Parsing HTTP off the socket is left to ``http.server``; this module only
translates between its handler API and HTTPRequest/HTTPResponse.

=============================================================================
"""

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
import logging
import threading

from .app import Application, create_app
from .config import AppConfig, ServerConfig
from .core.thread_pool import ThreadPool
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .http.status_codes import HTTPStatus, get_status_phrase
from .interop import InteropHost, default_host
from .runtime import Runtime


logger = logging.getLogger(__name__)


class _RequestHandler(BaseHTTPRequestHandler):
    """Bridges one http.server request to the runtime."""

    protocol_version = "HTTP/1.1"

    # set on the subclass built by Server
    runtime: Runtime = None
    server_name: str = "quoted/1.0"

    def _dispatch(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""

        request = HTTPRequest.from_target(
            method=self.command,
            target=self.path,
            headers=self.headers.items(),
            body=body,
            client_address=self.client_address,
        )

        try:
            response = self.runtime.handle(request)
        except Exception:
            logger.exception(f"Error handling {self.command} {self.path}")
            response = HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR)
            response.set_text("Internal Server Error")

        self._write(response)

    def __getattr__(self, name: str):
        # http.server looks up do_<METHOD>; every method goes to the router
        if name.startswith("do_"):
            return self._dispatch
        raise AttributeError(name)

    def _write(self, response: HTTPResponse):
        self.send_response(int(response.status), get_status_phrase(response.status))
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(response.body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(response.body)

    def version_string(self) -> str:
        return self.server_name

    def log_message(self, format: str, *args) -> None:
        # access logging happens in the runtime
        logger.debug("%s - " + format, self.address_string(), *args)


class Server:
    """
    The quoted HTTP server.

    Usage:
        server = Server(AppConfig.load("config.json"), ServerConfig(port=3000))
        server.run()

    Or, in tests, on a background thread:
        server = Server(app_config, ServerConfig(port=0))
        server.start()          # returns once bound
        ...
        server.stop()
    """

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        config: Optional[ServerConfig] = None,
        app: Optional[Application] = None,
        host: Optional[InteropHost] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.app = app or create_app(app_config)
        self.runtime = Runtime(
            self.app,
            host or default_host(self.app.config),
            ThreadPool(min_workers=self.config.min_workers, max_workers=self.config.max_workers),
        )

        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> tuple:
        """(host, port) actually bound; useful with port 0."""
        if self._httpd is None:
            return (self.config.host, self.config.port)
        return self._httpd.server_address[:2]

    def _bind(self) -> ThreadingHTTPServer:
        handler = type(
            "RequestHandler",
            (_RequestHandler,),
            {"runtime": self.runtime, "server_name": self.config.server_name},
        )
        httpd = ThreadingHTTPServer((self.config.host, self.config.port), handler)
        httpd.daemon_threads = True
        return httpd

    def run(self):
        """Start the server and block until Ctrl+C."""
        self._setup_logging()
        self.runtime.start()
        self._httpd = self._bind()

        host, port = self.address
        logger.info(f"Starting {self.config.server_name} on http://{host}:{port}")
        for method, variant in self.app.router.routes():
            logger.info(f"  {method:8} {variant}")
        logger.info(f"Interop calls: {', '.join(self.runtime.host.names)}")

        try:
            self._httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def start(self):
        """Start serving on a background thread (non-blocking)."""
        self.runtime.start()
        self._httpd = self._bind()
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        logger.debug(f"Serving on {self.address}")

    def stop(self):
        """Stop a server started with start()."""
        if self._httpd is not None:
            self._httpd.shutdown()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
        self._shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("quoted").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        if self._httpd is not None:
            self._httpd.server_close()
            self._httpd = None
        self.runtime.shutdown()
        logger.info("Server stopped")
