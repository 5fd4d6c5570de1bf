"""
Price Mapper

Maps heterogeneous price representations to a fixed ordinal bucket.

Handles:
- Symbolic tiers: "$", "$$", "€€€", "££££"
- Digit tiers: "1" .. "4"
- Bucket ids: "low", "mid", "high", "ultra"
- Textual tiers: "budget", "moderate", "expensive", "luxury", ...

Anything else (blank, "free", "varies") is unclassified: classify_price()
returns None and never raises.

Example:
    >>> classify_price("$$$")
    <PriceBucket.HIGH: 'high'>
    >>> classify_price("free") is None
    True
"""

import re
from enum import Enum
from typing import List, Optional, Union


class PriceBucket(str, Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"
    ULTRA = "ultra"

    @classmethod
    def ordered(cls) -> List["PriceBucket"]:
        return [cls.LOW, cls.MID, cls.HIGH, cls.ULTRA]

    @property
    def rank(self) -> int:
        return PriceBucket.ordered().index(self)


# === Vocabulary ===

CURRENCY_SYMBOLS = "$€£¥"

TEXT_TIERS = {
    # Low
    'low': PriceBucket.LOW,
    'cheap': PriceBucket.LOW,
    'budget': PriceBucket.LOW,
    'inexpensive': PriceBucket.LOW,
    'affordable': PriceBucket.LOW,
    'value': PriceBucket.LOW,

    # Mid
    'mid': PriceBucket.MID,
    'medium': PriceBucket.MID,
    'midrange': PriceBucket.MID,
    'moderate': PriceBucket.MID,
    'average': PriceBucket.MID,

    # High
    'high': PriceBucket.HIGH,
    'expensive': PriceBucket.HIGH,
    'premium': PriceBucket.HIGH,
    'upscale': PriceBucket.HIGH,
    'highend': PriceBucket.HIGH,

    # Ultra
    'ultra': PriceBucket.ULTRA,
    'luxury': PriceBucket.ULTRA,
    'ultraluxury': PriceBucket.ULTRA,
    'veryexpensive': PriceBucket.ULTRA,
    'designer': PriceBucket.ULTRA,
}

DIGIT_TIERS = {
    '1': PriceBucket.LOW,
    '2': PriceBucket.MID,
    '3': PriceBucket.HIGH,
    '4': PriceBucket.ULTRA,
}

SYMBOL_PATTERN = re.compile(r'^([' + re.escape(CURRENCY_SYMBOLS) + r'])\1*$')


def _text_key(raw: str) -> str:
    # "Mid-Range" -> "midrange", "very expensive" -> "veryexpensive"
    return re.sub(r'[\s_\-]+', '', raw.lower())


def classify_price(raw: Union[str, PriceBucket, None]) -> Optional[PriceBucket]:
    """
    Classify a price representation into a PriceBucket.

    Total and deterministic over its input vocabulary, and idempotent:
    classify_price(bucket.value) is bucket.

    Args:
        raw: Price text as entered, imported or stored

    Returns:
        PriceBucket, or None when the input is unclassified
    """
    if isinstance(raw, PriceBucket):
        return raw
    if not raw or not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None

    if SYMBOL_PATTERN.match(text):
        count = len(text)
        return PriceBucket.ordered()[min(count, 4) - 1]

    if text in DIGIT_TIERS:
        return DIGIT_TIERS[text]

    return TEXT_TIERS.get(_text_key(text))


def price_bucket_id(raw: Union[str, PriceBucket, None]) -> str:
    """
    Bucket id as stored on a Store ("" when unclassified).

    Example:
        >>> price_bucket_id("€€")
        'mid'
        >>> price_bucket_id("n/a")
        ''
    """
    bucket = classify_price(raw)
    return bucket.value if bucket else ""


def is_bucket_id(value: str) -> bool:
    """True if value is already a canonical bucket id."""
    return value in {bucket.value for bucket in PriceBucket}
