import re

DEFAULT_REVENUE = 10_000_000.0

_UNIT_MULTIPLIERS = {"thousand": 1e3, "k": 1e3, "million": 1e6, "m": 1e6, "billion": 1e9, "b": 1e9}

_NUMBER = r"(\d[\d,]*(?:\.\d+)?)"
_UNIT = r"(thousand|million|billion|[KMB])\b"
_KEYWORD = r"\s*(?:ARR|revenue|annually)"

# Order matters: keyword-anchored patterns win over bare amounts with a unit.
_REVENUE_PATTERNS = [
    re.compile(r"\$\s*" + _NUMBER + r"\s*" + _UNIT + _KEYWORD, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*" + _UNIT + _KEYWORD, re.IGNORECASE),
    re.compile(r"\$\s*" + _NUMBER + r"\s*" + _UNIT, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*" + _UNIT, re.IGNORECASE),
]

_BARE_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")


def _to_float(literal: str) -> float | None:
    try:
        return float(literal.replace(",", ""))
    except ValueError:
        return None


def normalize_revenue(text: str | None) -> float:
    """Convert a free-text revenue description ("$12M ARR", "approximately 3.2 billion")
    into an amount in base currency units.

    Never fails: unparseable input falls back to a bare number read as millions
    (when it lies in [1, 1000]) and finally to DEFAULT_REVENUE.
    """
    if not text:
        return DEFAULT_REVENUE

    for pattern in _REVENUE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        amount = _to_float(match.group(1))
        if amount is None or amount <= 0:
            continue
        return amount * _UNIT_MULTIPLIERS[match.group(2).lower()]

    number_match = _BARE_NUMBER.search(text)
    if number_match:
        amount = float(number_match.group(1))
        if 1 <= amount <= 1000:
            return amount * 1_000_000

    return DEFAULT_REVENUE
