"""
Top-level route handlers and the router that wires them.

    GET  Home(query)   200  "Home: " + render(query)
    ANY  Quote(lang)   delegated to quote.route
    GET  Number        getRandom(1e9), answered by the update loop
    GET  Buggy         500  "bugs, bugs, bugs"
    everything else    405  "Method not supported"
"""

from typing import List
import json

from . import quote
from .conn import Conn
from .http.status_codes import HTTPStatus
from .interop import GET_RANDOM, Command
from .messages import QuoteMsg, RandomNumber
from .router import Router
from .routes import Buggy, Home, Number, Quote


RANDOM_UPPER_BOUND = 1_000_000_000

BUGGY_BODY = "bugs, bugs, bugs"


def render_query(route: Home) -> str:
    """
    Render a Home route's query as a JSON object.

        /               → {}
        /?q=a           → {"q": "a"}
        /?q=a&q=b&n=1   → {"q": ["a", "b"], "n": "1"}
    """
    return json.dumps(route.query_dict(), ensure_ascii=False)


def home(conn: Conn) -> List[Command]:
    conn.respond(HTTPStatus.OK, "Home: " + render_query(conn.route))
    return []


def quote_route(conn: Conn) -> List[Command]:
    # sub-route messages come back wrapped so update can delegate them
    return [cmd.map(QuoteMsg) for cmd in quote.route(conn.route.lang, conn)]


def number(conn: Conn) -> List[Command]:
    return [GET_RANDOM.request(RANDOM_UPPER_BOUND, RandomNumber)]


def buggy(conn: Conn) -> List[Command]:
    # deliberate failure route for exercising the error path
    conn.respond(HTTPStatus.INTERNAL_SERVER_ERROR, BUGGY_BODY)
    return []


def build_router() -> Router:
    router = Router()
    router.add("GET", Home, home)
    router.add(None, Quote, quote_route)
    router.add("GET", Number, number)
    router.add("GET", Buggy, buggy)
    return router
