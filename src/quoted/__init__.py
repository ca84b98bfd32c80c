"""
=============================================================================
QUOTED
=============================================================================

A small example service showing three patterns working together:

    1. A MIDDLEWARE PIPELINE with short-circuit semantics
       cors → auth, where any step may answer the request itself.

    2. A ROUTER over a closed set of route variants
       (method, Home | Quote | Number | Buggy | NotFound) → handler,
       with a 405 fallback.

    3. ASYNCHRONOUS INTEROP CALLS
       Handlers return commands instead of blocking; results come back
       as messages through a single update entry point, which resumes
       exactly the connection that issued them.

=============================================================================
QUICK START
=============================================================================

    from quoted import create_app, Runtime, default_host, HTTPRequest

    app = create_app()
    runtime = Runtime(app, default_host(app.config))
    response = runtime.handle(
        HTTPRequest("GET", "/number", headers={"Authorization": "Bearer x"})
    )
    response.json()    # e.g. 483920117

=============================================================================
"""

__version__ = "1.0.0"

from .app import Application, create_app
from .config import AppConfig, ConfigError, ServerConfig
from .conn import Conn
from .http import HTTPRequest, HTTPResponse, HTTPStatus
from .interop import InteropHost, default_host
from .runtime import Runtime
from .server import Server

__all__ = [
    "Application",
    "create_app",
    "AppConfig",
    "ConfigError",
    "ServerConfig",
    "Conn",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "InteropHost",
    "default_host",
    "Runtime",
    "Server",
    "__version__",
]
