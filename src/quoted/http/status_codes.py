"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this service actually answers with, plus their reason
phrases. Only the codes reachable from a route, a pipeline step or the
update loop are listed.

    ┌──────┬──────────────────────────┬──────────────────────────────────────┐
    │ Code │ Phrase                   │ Produced by                          │
    ├──────┼──────────────────────────┼──────────────────────────────────────┤
    │ 200  │ OK                       │ home, number, quote                  │
    │ 204  │ No Content               │ CORS preflight                       │
    │ 401  │ Unauthorized             │ auth step                            │
    │ 404  │ Not Found                │ quote (unknown language, no quotes)  │
    │ 405  │ Method Not Allowed       │ router fallback                      │
    │ 500  │ Internal Server Error    │ /buggy, interop failure              │
    │ 501  │ Not Implemented          │ POST /quote/:lang                    │
    └──────┴──────────────────────────┴──────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status code with its reason phrase attached.

        >>> HTTPStatus.METHOD_NOT_ALLOWED == 405
        True
        >>> HTTPStatus.METHOD_NOT_ALLOWED.phrase
        'Method Not Allowed'
    """

    def __new__(cls, code: int, phrase: str):
        member = int.__new__(cls, code)
        member._value_ = code
        member.phrase = phrase
        return member

    OK = 200, "OK"
    NO_CONTENT = 204, "No Content"

    UNAUTHORIZED = 401, "Unauthorized"
    NOT_FOUND = 404, "Not Found"
    METHOD_NOT_ALLOWED = 405, "Method Not Allowed"

    INTERNAL_SERVER_ERROR = 500, "Internal Server Error"
    NOT_IMPLEMENTED = 501, "Not Implemented"


def get_status_phrase(code: int) -> str:
    """Reason phrase for a plain int code; "Unknown" outside the table."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"
