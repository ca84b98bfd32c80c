"""
=============================================================================
HTTP MESSAGES
=============================================================================

Request and response value types shared by the pipeline, the router and
the transport.

    request.py       HTTPRequest: method, path, lowercase headers, query
    response.py      HTTPResponse: status, headers, body + text/json helpers
    status_codes.py  HTTPStatus: the codes this service answers with

=============================================================================
"""

from .request import HTTPRequest
from .response import HTTPResponse, TEXT_CONTENT_TYPE, JSON_CONTENT_TYPE
from .status_codes import HTTPStatus, get_status_phrase

__all__ = [
    "HTTPRequest",
    "HTTPResponse",
    "TEXT_CONTENT_TYPE",
    "JSON_CONTENT_TYPE",
    "HTTPStatus",
    "get_status_phrase",
]
