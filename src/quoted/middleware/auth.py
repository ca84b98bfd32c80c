"""
Authorization step.

Rejects requests without an ``Authorization`` header with 401. When the
config carries a secret, the header must also read ``Bearer <secret>``.
"""

from typing import Optional
import hmac
import logging

from .base import Step
from ..config import AuthConfig
from ..conn import Conn
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

MISSING_HEADER = "Authorization header not provided"
INVALID_HEADER = "Invalid authorization"


class AuthStep(Step):

    def __init__(self, config: Optional[AuthConfig] = None):
        self.config = config or AuthConfig()

    def __call__(self, conn: Conn) -> Conn:
        if not self.config.enabled:
            return conn

        header = conn.header("authorization")
        if header is None:
            logger.info(f"[{conn.id}] rejected {conn.method} {conn.request.path}: no authorization")
            return conn.respond(HTTPStatus.UNAUTHORIZED, MISSING_HEADER)

        if self.config.secret is not None:
            expected = f"Bearer {self.config.secret}"
            # constant-time comparison
            if not hmac.compare_digest(header.encode("utf-8"), expected.encode("utf-8")):
                logger.info(f"[{conn.id}] rejected {conn.method} {conn.request.path}: bad credentials")
                return conn.respond(HTTPStatus.UNAUTHORIZED, INVALID_HEADER)

        return conn
