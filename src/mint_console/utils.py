"""Validators and formatting helpers for the mint console."""

import math
import re
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlparse

from web3 import Web3

from .exceptions import MalformedInputError

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
_BARE_URI_SCHEMES = ("ipfs://", "ar://")


def is_valid_address(value: Any) -> bool:
    """Return True for ``0x`` followed by exactly 40 hex characters (any case)."""
    if not isinstance(value, str):
        return False
    return _ADDRESS_RE.fullmatch(value) is not None


def to_decimal(value: Any) -> Decimal | None:
    """Coerce user input into a finite Decimal, or None when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not number.is_finite():
        return None
    return number


def is_valid_amount(value: Any, min_value: float | int = 0, max_value: float | int | None = None) -> bool:
    """Check a (possibly fractional) number lies within ``[min_value, max_value]``."""
    number = to_decimal(value)
    if number is None:
        return False
    if number < Decimal(str(min_value)):
        return False
    if max_value is not None and number > Decimal(str(max_value)):
        return False
    return True


def is_valid_integer(value: Any, min_value: int = 1, max_value: int | None = None) -> bool:
    """Check an integral number lies within ``[min_value, max_value]``."""
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return False
    return is_valid_amount(number, min_value, max_value)


def parse_integer(value: Any) -> int:
    """Convert validated integer input to int."""
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        raise MalformedInputError(f"Invalid number: {value!r}", details={"value": value})
    return int(number)


def is_valid_uri(value: Any) -> bool:
    """Accept absolute URLs plus bare ``ipfs://`` and ``ar://`` references."""
    if not isinstance(value, str) or not value:
        return False
    if any(ch.isspace() for ch in value):
        return False
    if value.startswith(_BARE_URI_SCHEMES):
        return True

    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def parse_ether(value: Any) -> int:
    """Convert an ether amount into wei."""
    number = to_decimal(value)
    if number is None or number < 0:
        raise MalformedInputError(f"Invalid ether amount: {value!r}", details={"value": value})
    return int(Web3.to_wei(number, "ether"))


def format_ether(wei: int | None, places: int | None = None) -> str:
    """Render a wei amount in ether, optionally rounded to ``places`` decimals."""
    if wei is None:
        return "-"
    ether = Decimal(Web3.from_wei(int(wei), "ether"))
    if places is None:
        return format(ether.normalize(), "f")
    return f"{ether:.{places}f}"


def shorten_address(address: str | None, start: int = 6, end: int = 4) -> str:
    """Abbreviate an address as ``0x1234...abcd``; other strings pass through."""
    if address is None:
        return "-"
    if not is_valid_address(address):
        return address
    return f"{address[:start]}...{address[-end:]}"


def apply_gas_margin(estimate: int, margin_percent: int) -> int:
    """Return ``ceil(estimate * margin_percent / 100)`` without float rounding."""
    if estimate < 0:
        raise MalformedInputError("Gas estimate cannot be negative", details={"estimate": estimate})
    return (int(estimate) * margin_percent + 99) // 100


def percent_to_basis_points(value: Any) -> int:
    """Convert a percentage such as ``2.5`` into basis points (``250``), flooring."""
    number = to_decimal(value)
    if number is None:
        raise MalformedInputError(f"Invalid percentage: {value!r}", details={"value": value})
    return int((number * 100).to_integral_value(rounding=ROUND_FLOOR))


def clamp_int(value: Any, min_value: int, max_value: int) -> int | None:
    """Parse an integer and clamp it to ``[min_value, max_value]``; None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    else:
        try:
            number = int(str(value if value is not None else "").strip())
        except ValueError:
            return None
    return max(min_value, min(max_value, number))
