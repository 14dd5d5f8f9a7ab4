"""
Free-text currency range parsing.

Profile rows describe income and expense as ranges such as
'Rp2.000.001 - Rp4.000.000', '< Rp2.000.000' or '> Rp15.000.000'.
parse_amount turns any of these into one estimate in Rupiah:

  - '< X'    -> X / 2      (open lower bound)
  - '> X'    -> X * 1.2    (open upper bound)
  - 'A - B'  -> (A + B) / 2
  - 'X'      -> X
  - anything without digits -> 0

Dots and commas are thousands separators; amounts are whole Rupiah.
"""
from __future__ import annotations

import math
import re
from typing import Any, List, Optional

OPEN_LOWER_FACTOR = 0.5
OPEN_UPPER_FACTOR = 1.2

_CURRENCY_RE = re.compile(r"rp", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d[\d.,]*")
_RANGE_RE = re.compile(r"\d[\d.,]*\s*[-–—]\s*\d")

# (label, inclusive upper bound in Rupiah); the last bucket is open-ended
INCOME_BUCKETS = (
    ("<2M", 2_000_000),
    ("2M-4M", 4_000_000),
    ("4M-6M", 6_000_000),
    ("6M-10M", 10_000_000),
    ("10M-15M", 15_000_000),
    (">15M", None),
)
INCOME_BUCKET_LABELS = tuple(label for label, _ in INCOME_BUCKETS)
UNKNOWN_BUCKET = "Unknown"


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def _to_number(token: str) -> Optional[float]:
    digits = token.replace(".", "").replace(",", "")
    try:
        value = float(digits)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _numbers(text: str) -> List[float]:
    out: List[float] = []
    for token in _NUMBER_RE.findall(text):
        value = _to_number(token)
        if value is not None:
            out.append(value)
    return out


def parse_amount_estimate(value: Any) -> Optional[float]:
    """
    Parse a currency range into a Rupiah estimate.

    Returns None when nothing usable is present (empty, no digits, NaN,
    negative or non-finite numbers). Never raises.
    """
    if _is_missing(value) or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        if not math.isfinite(number) or number < 0:
            return None
        return number

    text = str(value).strip()
    if not text:
        return None

    cleaned = _CURRENCY_RE.sub("", text)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    numbers = _numbers(cleaned)
    if not numbers:
        return None

    if "<" in cleaned:
        estimate = numbers[0] * OPEN_LOWER_FACTOR
    elif ">" in cleaned:
        estimate = numbers[0] * OPEN_UPPER_FACTOR
    elif len(numbers) >= 2 and _RANGE_RE.search(cleaned):
        estimate = numbers[0] / 2 + numbers[1] / 2
    else:
        estimate = numbers[0]

    # huge bounds can overflow once scaled
    return estimate if math.isfinite(estimate) else None


def parse_amount(value: Any) -> float:
    """Like parse_amount_estimate, but 0.0 stands in for "could not parse"."""
    estimate = parse_amount_estimate(value)
    if estimate is None:
        return 0.0
    return estimate


def income_bucket(value: Any) -> str:
    """Map an income string (or number) to one of INCOME_BUCKET_LABELS."""
    estimate = parse_amount_estimate(value)
    if not estimate:
        return UNKNOWN_BUCKET
    for label, upper in INCOME_BUCKETS:
        if upper is None or estimate <= upper:
            return label
    return UNKNOWN_BUCKET
