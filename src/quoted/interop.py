"""
=============================================================================
INTEROP
=============================================================================

Interop calls are one-shot requests to capabilities that live outside the
request handlers: random numbers, the quote catalog. A handler never calls
them directly. It returns a Command, and the runtime runs the command and
feeds the result back in as a message.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ONE INTEROP ROUND TRIP                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   handler                runtime                    InteropHost      │
    │      │                      │                            │           │
    │      │  Command(getRandom,  │                            │           │
    │      │   1000000000,        │   "getRandom", "1000000000"│           │
    │      │   RandomNumber) ───► │ ─────────────────────────► │           │
    │      │                      │                            │           │
    │      │                      │          "483920117"       │           │
    │      │                      │ ◄───────────────────────── │           │
    │      │                      │                            │           │
    │   update(RandomNumber(483920117), conn)                  │           │
    │      ◄──────────────────────│                            │           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Arguments and results cross the boundary as JSON text, so every call is
declared with an encoder for its argument and a decoder for its result.
A decoder that sees the wrong JSON type raises InteropDecodeError.

=============================================================================
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import random

from .config import AppConfig


logger = logging.getLogger(__name__)


class InteropError(Exception):
    """Base class for interop failures. Carries the call name."""

    def __init__(self, message: str, call: str = ""):
        super().__init__(message)
        self.call = call


class InteropDecodeError(InteropError):
    """The host answered, but not with the type the call declares."""


class UnknownInteropCall(InteropError):
    """No host function is registered under the command's call name."""


# =============================================================================
# RESULT DECODERS
# =============================================================================


def decode_int(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise InteropDecodeError(f"expected int, got {type(raw).__name__}")
    return raw


def decode_float(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise InteropDecodeError(f"expected float, got {type(raw).__name__}")
    return float(raw)


def decode_str_list(raw: Any) -> List[str]:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise InteropDecodeError("expected list of strings")
    return list(raw)


def _identity(value: Any) -> Any:
    return value


def _no_argument(value: Any) -> None:
    return None


# =============================================================================
# CALLS AND COMMANDS
# =============================================================================


@dataclass(frozen=True)
class InteropCall:
    """
    Declaration of one interop call: its name, how to encode the argument
    and how to decode the result.
    """

    name: str
    decode: Callable[[Any], Any]
    encode: Callable[[Any], Any] = _identity

    def request(self, arg: Any, tagger: Callable[[Any], Any]) -> "Command":
        """
        Build a command for this call.

        ``tagger`` wraps the decoded result into the message the update
        loop will receive, e.g. ``GET_RANDOM.request(10, RandomNumber)``.
        """
        return Command(call=self, arg=self.encode(arg), tagger=tagger)


@dataclass(frozen=True)
class Command:
    """
    A pending interop call. Effectively fire-and-forget for the handler:
    the runtime owns correlation back to the issuing conn.
    """

    call: InteropCall
    arg: Any
    tagger: Callable[[Any], Any]

    @property
    def name(self) -> str:
        return self.call.name

    def map(self, wrap: Callable[[Any], Any]) -> "Command":
        """
        Wrap the message this command produces.

        Sub-routes use this so their messages come back addressed to them:
        ``cmd.map(QuoteMsg)`` turns GotQuotes(...) into QuoteMsg(GotQuotes(...)).
        """
        inner = self.tagger
        return replace(self, tagger=lambda value: wrap(inner(value)))

    def resolve(self, raw: Any) -> Any:
        """Decode a raw JSON result and tag it as a message."""
        try:
            value = self.call.decode(raw)
        except InteropDecodeError as e:
            e.call = self.call.name
            raise
        return self.tagger(value)


GET_RANDOM = InteropCall("getRandom", decode=decode_int, encode=int)
GET_RANDOM_UNIT = InteropCall("getRandomUnit", decode=decode_float, encode=_no_argument)
FETCH_QUOTES = InteropCall("fetchQuotes", decode=decode_str_list, encode=str)

INTEROP_CALLS = (GET_RANDOM, GET_RANDOM_UNIT, FETCH_QUOTES)


# =============================================================================
# HOST
# =============================================================================


HostFunction = Callable[[Any], Any]


class InteropHost:
    """
    Registry of functions implementing interop calls, keyed by call name.

    Usage:
        host = InteropHost()

        @host.register("getRandom")
        def get_random(upper):
            return random.randrange(upper)

        host.invoke(GET_RANDOM.request(10, RandomNumber))   # raw JSON result
    """

    def __init__(self):
        self._functions: Dict[str, HostFunction] = {}

    def register(self, name: str, func: Optional[HostFunction] = None):
        """Register ``func`` under ``name``. Usable as a decorator."""
        if func is not None:
            self._functions[name] = func
            return func

        def decorator(f: HostFunction) -> HostFunction:
            self._functions[name] = f
            return f
        return decorator

    def handles(self, name: str) -> bool:
        return name in self._functions

    @property
    def names(self) -> List[str]:
        return sorted(self._functions)

    def call(self, name: str, payload: str) -> str:
        """
        Run a call with a JSON-text argument and return a JSON-text result.

        Raises:
            UnknownInteropCall: If nothing is registered under ``name``.
        """
        func = self._functions.get(name)
        if func is None:
            raise UnknownInteropCall(f"no host function for {name}", call=name)
        result = func(json.loads(payload))
        return json.dumps(result)

    def invoke(self, command: Command) -> Any:
        """Run a command's call and return the raw (still undecoded) result."""
        logger.debug(f"interop call {command.name}({command.arg!r})")
        return json.loads(self.call(command.name, json.dumps(command.arg)))


def default_host(config: AppConfig, rng: Optional[random.Random] = None) -> InteropHost:
    """
    Host implementing every call in INTEROP_CALLS.

    Pass a seeded ``random.Random`` for reproducible results.
    """
    rng = rng or random.Random()
    host = InteropHost()

    @host.register(GET_RANDOM.name)
    def get_random(upper: int) -> int:
        return rng.randrange(upper)

    @host.register(GET_RANDOM_UNIT.name)
    def get_random_unit(_: Any) -> float:
        return rng.random()

    @host.register(FETCH_QUOTES.name)
    def fetch_quotes(lang: str) -> List[str]:
        return list(config.quotes.get(lang, ()))

    return host
