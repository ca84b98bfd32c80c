"""
=============================================================================
CONFIGURATION
=============================================================================

Two configuration objects, with two different lifecycles:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   AppConfig       decoded ONCE from JSON at startup, then frozen.    │
    │                   Every Conn carries a reference to the same value.  │
    │                   Sections: auth, cors, quotes.                      │
    │                                                                      │
    │   ServerConfig    how the process listens: host, port, workers,      │
    │                   log level. Mutable; CLI flags override it.         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
APP CONFIG JSON
=============================================================================

    {
      "auth":   {"enabled": true, "secret": "s3cret"},
      "cors":   {"allow_origins": ["*"], "allow_methods": ["GET", "POST"],
                 "allow_headers": ["Authorization"], "max_age": 600},
      "quotes": {"en": ["..."], "fr": ["..."]}
    }

Every section and every key is optional. A value of the wrong type is a
ConfigError, and so is malformed JSON: the server refuses to start rather
than run with half a configuration.

=============================================================================
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple
import json
import os


class ConfigError(ValueError):
    """
    Raised when the app configuration cannot be decoded.

    Carries the dotted path of the offending key (``cors.max_age``) so the
    startup error points straight at the problem.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        if key:
            message = f"{key}: {message}"
        super().__init__(message)
        self.key = key


DEFAULT_QUOTES = {
    "en": (
        "Simplicity is prerequisite for reliability.",
        "Premature optimization is the root of all evil.",
        "Programs must be written for people to read.",
    ),
    "fr": (
        "La simplicité est la sophistication suprême.",
        "Cent fois sur le métier remettez votre ouvrage.",
    ),
    "es": (
        "Caminante, no hay camino, se hace camino al andar.",
    ),
}


@dataclass(frozen=True)
class AuthConfig:
    """
    Authorization settings.

    enabled:  When False the auth step lets every request through.
    secret:   When set, the Authorization header must be "Bearer <secret>".
              When unset, any Authorization header is accepted.
    """

    enabled: bool = True
    secret: Optional[str] = None


@dataclass(frozen=True)
class CORSConfig:
    """
    CORS settings.

    Permissive by default (every origin), which suits an example service.
    Restrict ``allow_origins`` for anything facing real browsers.
    """

    allow_origins: Tuple[str, ...] = ("*",)
    allow_methods: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")
    allow_headers: Tuple[str, ...] = ("Content-Type", "Authorization")
    max_age: int = 86400


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable per-instance application configuration.

    ``quotes`` maps a language code to the quotes served for it; the set of
    keys is also the set of languages ``/quote/:lang`` accepts.
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    quotes: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_QUOTES))
    )

    @classmethod
    def from_json(cls, text: str) -> "AppConfig":
        """
        Decode configuration from a JSON document.

        Raises:
            ConfigError: If the document is not valid JSON or a value has
                         the wrong type.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON: {e}")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> "AppConfig":
        """Decode configuration from already-parsed JSON data."""
        data = _expect(data, dict, "config")

        auth_data = _expect(data.get("auth", {}), dict, "auth")
        auth = AuthConfig(
            enabled=_expect(auth_data.get("enabled", True), bool, "auth.enabled"),
            secret=_optional_str(auth_data.get("secret"), "auth.secret"),
        )

        cors_data = _expect(data.get("cors", {}), dict, "cors")
        defaults = CORSConfig()
        max_age = cors_data.get("max_age", defaults.max_age)
        if isinstance(max_age, bool) or not isinstance(max_age, int) or max_age < 0:
            raise ConfigError("expected a non-negative integer", key="cors.max_age")
        cors = CORSConfig(
            allow_origins=_str_tuple(
                cors_data.get("allow_origins", defaults.allow_origins), "cors.allow_origins"
            ),
            allow_methods=tuple(
                m.upper() for m in _str_tuple(
                    cors_data.get("allow_methods", defaults.allow_methods), "cors.allow_methods"
                )
            ),
            allow_headers=_str_tuple(
                cors_data.get("allow_headers", defaults.allow_headers), "cors.allow_headers"
            ),
            max_age=max_age,
        )

        if "quotes" in data:
            quotes_data = _expect(data["quotes"], dict, "quotes")
            quotes = {
                lang: _str_tuple(items, f"quotes.{lang}")
                for lang, items in quotes_data.items()
            }
        else:
            quotes = dict(DEFAULT_QUOTES)

        return cls(auth=auth, cors=cors, quotes=MappingProxyType(quotes))

    @classmethod
    def load(cls, path: str) -> "AppConfig":
        """
        Load configuration from a JSON file.

        Raises:
            ConfigError: If the file cannot be read or decoded.
        """
        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(f"cannot read {path}: {e.strerror or e}")
        return cls.from_json(text)


def _expect(value: Any, kind: type, key: str) -> Any:
    # bool is a subclass of int; keep the two apart
    if not isinstance(value, kind) or (kind is not bool and isinstance(value, bool)):
        raise ConfigError(f"expected {kind.__name__}, got {type(value).__name__}", key=key)
    return value


def _optional_str(value: Any, key: str) -> Optional[str]:
    if value is None:
        return None
    return _expect(value, str, key)


def _str_tuple(value: Any, key: str) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"expected list, got {type(value).__name__}", key=key)
    for item in value:
        _expect(item, str, key)
    return tuple(value)


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP transport and the interop worker pool.

    =========================================================================
    DEVELOPMENT VS PRODUCTION
    =========================================================================

    Development:
        ServerConfig(host="127.0.0.1", port=8080, log_level="DEBUG")

    Containers:
        ServerConfig(host="0.0.0.0", port=8080, max_workers=16)

    =========================================================================
    """

    host: str = "127.0.0.1"
    """The IP address to bind to. "0.0.0.0" for all interfaces."""

    port: int = 8080
    """The port number to listen on. 0 lets the OS pick a free port."""

    min_workers: int = 2
    """Interop worker threads started up front."""

    max_workers: int = 8
    """Upper bound on interop worker threads under load."""

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    server_name: str = "quoted/1.0"
    """Value of the Server response header."""

    config_path: Optional[str] = None
    """Path to the AppConfig JSON file. None uses built-in defaults."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        QUOTED_HOST       Server host (default: 127.0.0.1)
        QUOTED_PORT       Server port (default: 8080)
        QUOTED_WORKERS    Max interop worker threads (default: 8)
        QUOTED_LOG_LEVEL  Logging level (default: INFO)
        QUOTED_CONFIG     AppConfig JSON file (default: none)

        =====================================================================
        """
        max_workers = int(os.getenv("QUOTED_WORKERS", "8"))
        return cls(
            host=os.getenv("QUOTED_HOST", "127.0.0.1"),
            port=int(os.getenv("QUOTED_PORT", "8080")),
            # keep min_workers <= max_workers
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            log_level=os.getenv("QUOTED_LOG_LEVEL", "INFO"),
            config_path=os.getenv("QUOTED_CONFIG"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup, not on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
