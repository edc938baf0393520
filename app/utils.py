"""Utility helpers for the streamTV service."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Callable, Iterable
from zoneinfo import ZoneInfo

from .errors import CustomerIdExhausted


TRAILING_DIGITS_RE = re.compile(r"(\d+)$")

Today = Callable[[], date]


def today_in(zone: ZoneInfo) -> Today:
    """Return a callable yielding the current calendar day in ``zone``."""

    def _today() -> date:
        return datetime.now(zone).date()

    return _today


def customer_id_suffix(identifier: str | None) -> int:
    """Return the trailing numeric part of a customer identifier (0 if none)."""

    if not identifier:
        return 0
    match = TRAILING_DIGITS_RE.search(identifier.strip())
    if not match:
        return 0
    return int(match.group(1))


def format_customer_id(prefix: str, number: int, digits: int) -> str:
    return f"{prefix}{number:0{digits}d}"


def next_customer_id(current_max: str | None, *, prefix: str, digits: int) -> str:
    """Derive the identifier following ``current_max``.

    ``cust0007`` becomes ``cust0008`` with the default ``cust0`` prefix and
    three digits. Numbers that no longer fit ``digits`` raise
    :class:`CustomerIdExhausted` instead of widening the format.
    """

    number = customer_id_suffix(current_max) + 1
    if number >= 10**digits:
        raise CustomerIdExhausted(current_max or "", digits)
    return format_customer_id(prefix, number, digits)


def highest_customer_id(identifiers: Iterable[str]) -> str | None:
    """Return the identifier carrying the largest numeric suffix.

    Stored identifiers mix padded and unpadded suffixes (``cust09`` next to
    ``cust0010``), so their text order says nothing about their numbers.
    """

    return max(identifiers, key=customer_id_suffix, default=None)


def like_term(value: str | None) -> str | None:
    """Trim a free-text search term; blank terms yield ``None``."""

    if value is None:
        return None
    return value.strip() or None
