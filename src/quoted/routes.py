"""
=============================================================================
ROUTES
=============================================================================

A route is the parsed meaning of a request path. The set of routes is
CLOSED: every path parses to exactly one of these variants.

    ┌──────────────────┬──────────────────────┬──────────────────────────┐
    │ Path             │ Variant              │ Carries                  │
    ├──────────────────┼──────────────────────┼──────────────────────────┤
    │ /?q=x&age=3      │ Home(query)          │ query as ordered pairs   │
    │ /quote/:lang     │ Quote(lang)          │ language code            │
    │ /number          │ Number()             │                          │
    │ /buggy           │ Buggy()              │                          │
    │ anything else    │ NotFound(path)       │ the raw path             │
    └──────────────────┴──────────────────────┴──────────────────────────┘

Routes are frozen dataclasses, so a handler can match on the type and read
its fields, but never change them.

=============================================================================
PATTERN COMPILATION
=============================================================================

Patterns are compiled to anchored regexes with named groups:

    /quote/:lang   →   ^/quote/(?P<lang>[^/]+)$

When matching /quote/en the groups become the variant's constructor
arguments: Quote(lang="en").

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple
import re


Query = Tuple[Tuple[str, Tuple[str, ...]], ...]


@dataclass(frozen=True)
class Home:
    query: Query = ()

    def query_dict(self) -> Dict[str, object]:
        """
        Query as a plain dict: single values as strings, repeated keys as
        lists, in first-seen key order.
        """
        return {
            key: values[0] if len(values) == 1 else list(values)
            for key, values in self.query
        }


@dataclass(frozen=True)
class Quote:
    lang: str


@dataclass(frozen=True)
class Number:
    pass


@dataclass(frozen=True)
class Buggy:
    pass


@dataclass(frozen=True)
class NotFound:
    path: str


ROUTE_VARIANTS = (Home, Quote, Number, Buggy, NotFound)


RouteFactory = Callable[[Dict[str, str], Query], object]


class RouteTable:
    """
    Ordered list of (pattern, factory) pairs. First match wins.

    Usage:
        table = RouteTable()
        table.add("/quote/:lang", lambda params, query: Quote(params["lang"]))
        table.parse("/quote/en")   # Quote(lang="en")
        table.parse("/nope")       # NotFound(path="/nope")
    """

    def __init__(self):
        self._entries: List[Tuple[str, re.Pattern, RouteFactory]] = []

    def add(self, path: str, factory: RouteFactory) -> "RouteTable":
        self._entries.append((path, _compile_pattern(path), factory))
        return self

    def parse(self, path: str, query_params: Dict[str, list] = None) -> object:
        """
        Parse a request path (and its query) into a route variant.

        Trailing slashes are ignored, so /number/ and /number are the same.
        """
        path = "/" + path.strip("/") if path != "/" else "/"
        query: Query = tuple(
            (key, tuple(values)) for key, values in (query_params or {}).items()
        )

        for _, pattern, factory in self._entries:
            match = pattern.match(path)
            if match:
                return factory(match.groupdict(), query)

        return NotFound(path)

    @property
    def patterns(self) -> List[str]:
        return [path for path, _, _ in self._entries]


def _compile_pattern(path: str) -> re.Pattern:
    """
    Compile a path pattern into an anchored regex.

        ""        → (skip empty)
        "quote"   → /quote               (static)
        ":lang"   → /(?P<lang>[^/]+)    (param)
    """
    regex_parts = ["^"]

    for segment in path.split("/"):
        if not segment:
            continue

        regex_parts.append("/")

        if segment.startswith(":"):
            regex_parts.append(f"(?P<{segment[1:]}>[^/]+)")
        else:
            regex_parts.append(re.escape(segment))

    if len(regex_parts) == 1:
        regex_parts.append("/")

    regex_parts.append("$")
    return re.compile("".join(regex_parts))


def default_route_table() -> RouteTable:
    """The service's routes."""
    return (
        RouteTable()
        .add("/", lambda params, query: Home(query))
        .add("/quote/:lang", lambda params, query: Quote(params["lang"]))
        .add("/number", lambda params, query: Number())
        .add("/buggy", lambda params, query: Buggy())
    )
