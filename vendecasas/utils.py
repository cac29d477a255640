"""
Identifier parsing and field normalization for listings.
"""

import logging
import math
import re
import secrets
from dataclasses import dataclass
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

# Range of the sequential_id INTEGER column
MIN_SEQUENTIAL_ID = -2**63
MAX_SEQUENTIAL_ID = 2**63 - 1

# Numeric token grammar: ASCII decimal/exponent, Infinity, 0x/0o/0b literals
DECIMAL_TOKEN = re.compile(r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")
RADIX_TOKEN = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")


@dataclass(frozen=True)
class SequentialId:
    """Application-assigned listing number (the public `id`)."""
    number: float

    @property
    def value(self) -> Optional[int]:
        """
        The integer id, or None when the token can never match a listing:
        non-integral ("1.5"), infinite, or outside the column range.
        """
        number = float(self.number)
        if not (math.isfinite(number) and number.is_integer()):
            return None
        value = int(number)
        if not MIN_SEQUENTIAL_ID <= value <= MAX_SEQUENTIAL_ID:
            return None
        return value


@dataclass(frozen=True)
class StorageId:
    """Opaque identifier assigned by the store at insertion time (the public `_id`)."""
    value: str


Identifier = Union[SequentialId, StorageId]


def _parse_number(token: str) -> Optional[float]:
    stripped = token.strip()
    if not stripped:
        # A blank token is zero, like an empty numeric string in the web client
        return 0.0
    if RADIX_TOKEN.fullmatch(stripped):
        try:
            return float(int(stripped, 0))
        except OverflowError:
            return math.inf
    if DECIMAL_TOKEN.fullmatch(stripped):
        return float(stripped)
    return None


def parse_identifier(token: str) -> Identifier:
    """
    Resolve a path token to a listing identifier.

    Numeric tokens always address the sequential id, there is no fallback to
    the storage id. Everything else is a storage id lookup.

    Args:
        token: Raw `:id` path segment

    Returns:
        SequentialId or StorageId
    """
    number = _parse_number(token)
    if number is not None:
        logger.debug(f"Identifier {token!r} resolved as sequential id")
        return SequentialId(number)
    logger.debug(f"Identifier {token!r} resolved as storage id")
    return StorageId(token)


def new_storage_id() -> str:
    """
    Generate a 24-char hex storage id.

    Ids that would parse as numbers (all digits, or an exponent form such
    as "12e45...") are discarded so every record stays addressable.
    """
    while True:
        candidate = secrets.token_hex(12)
        if _parse_number(candidate) is None:
            return candidate


def normalize_area(value: Any) -> Optional[float]:
    """
    Coerce a surface area to a number or None.

    "", None and missing values become None; anything else is parsed as a
    number and raises ValueError when it is not one.
    """
    if value is None or value == "":
        return None
    number = float(value)
    if math.isnan(number):
        raise ValueError(f"invalid area: {value!r}")
    return number


def normalize_images(value: Any) -> list:
    """Images must be an ordered sequence; anything else becomes an empty list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return []
