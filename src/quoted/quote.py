"""
=============================================================================
QUOTE SUB-ROUTE
=============================================================================

Everything under ``/quote/:lang`` is delegated here, for every method. The
sub-route has its own router and its own update function, and its messages
reach it wrapped in ``QuoteMsg``.

    GET /quote/en
        │
        ├─ "en" not in config.quotes ──► 404 "Unknown language: en"
        │
        ▼
    fetchQuotes("en")  ── GotQuotes([...]) ──►  model.quotes += [...]
        │
        ├─ no quotes ──► 404 "No quotes for en"
        ├─ ?all      ──► 200 [all quotes]
        │
        ▼
    getRandomUnit()    ── GotPick(0.41)    ──►  200 {"lang": "en", "quote": ...}

    POST /quote/en     ──► 501 "Not implemented"
    other methods      ──► 405 "Method not supported"

=============================================================================
"""

from dataclasses import dataclass
from typing import List, Tuple
import logging

from .conn import Conn
from .http.status_codes import HTTPStatus
from .interop import FETCH_QUOTES, GET_RANDOM_UNIT, Command
from .router import METHOD_NOT_SUPPORTED


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GotQuotes:
    quotes: Tuple[str, ...]


@dataclass(frozen=True)
class GotPick:
    unit: float


QUOTE_MESSAGE_VARIANTS = (GotQuotes, GotPick)


class UnhandledQuoteMessage(TypeError):
    pass


def _got_quotes(quotes: List[str]) -> GotQuotes:
    return GotQuotes(tuple(quotes))


def route(lang: str, conn: Conn) -> List[Command]:
    """Handle any method on /quote/:lang."""
    if conn.method == "GET":
        if lang not in conn.config.quotes:
            conn.respond(HTTPStatus.NOT_FOUND, f"Unknown language: {lang}")
            return []
        return [FETCH_QUOTES.request(lang, _got_quotes)]

    if conn.method == "POST":
        conn.respond(HTTPStatus.NOT_IMPLEMENTED, "Not implemented")
        return []

    conn.respond(HTTPStatus.METHOD_NOT_ALLOWED, METHOD_NOT_SUPPORTED)
    return []


def update(msg, conn: Conn) -> List[Command]:
    """Handle a quote sub-message for ``conn``."""
    lang = conn.route.lang

    if isinstance(msg, GotQuotes):
        conn.model.quotes.extend(msg.quotes)

        if not conn.model.quotes:
            conn.respond(HTTPStatus.NOT_FOUND, f"No quotes for {lang}")
            return []

        if conn.request.has_query("all"):
            conn.respond_json(HTTPStatus.OK, list(conn.model.quotes))
            return []

        return [GET_RANDOM_UNIT.request(None, GotPick)]

    if isinstance(msg, GotPick):
        quotes = conn.model.quotes
        index = pick_index(msg.unit, len(quotes))
        logger.debug(f"[{conn.id}] picked quote {index} of {len(quotes)} for {lang}")
        conn.respond_json(HTTPStatus.OK, {"lang": lang, "quote": quotes[index]})
        return []

    raise UnhandledQuoteMessage(f"quote.update cannot handle {type(msg).__name__}")


def pick_index(unit: float, count: int) -> int:
    """Map a value in [0, 1) onto an index in [0, count)."""
    return max(0, min(int(unit * count), count - 1))
