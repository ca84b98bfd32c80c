"""
Top-level messages delivered to ``Application.update``.

The set is closed: ``MESSAGE_VARIANTS`` lists every type update must handle.
Quote sub-messages live in :mod:`quoted.quote` and arrive wrapped in QuoteMsg.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RandomNumber:
    """Result of getRandom."""

    value: int


@dataclass(frozen=True)
class QuoteMsg:
    """A message addressed to the quote sub-route."""

    inner: Any


@dataclass(frozen=True)
class InteropFailed:
    """An interop call raised on the host side or returned the wrong type."""

    call: str
    reason: str


MESSAGE_VARIANTS = (RandomNumber, QuoteMsg, InteropFailed)
