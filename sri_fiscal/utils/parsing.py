"""Shared parsing utilities for locale-ambiguous amounts.

Declarations mix Spanish (``1.234,56``) and English (``1,234.56``) number
formats, sometimes inside the same document. :func:`normalize_amount` decides
which separator is the decimal point with a fixed rule table and never raises.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")

# Longest leading decimal literal ("1.2.3" -> "1.2", "12abc" -> "12")
_LEADING_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_WHITESPACE_RE = re.compile(r"\s+")


class SeparatorRule(Enum):
    """Which branch of the separator table a token falls into."""

    EMPTY = "empty"
    PLAIN = "plain"
    COMMA_THOUSANDS = "comma_thousands"
    COMMA_DECIMAL = "comma_decimal"
    PERIOD_THOUSANDS = "period_thousands"
    PERIOD_DECIMAL = "period_decimal"
    COMMA_DECIMAL_MIXED = "comma_decimal_mixed"
    PERIOD_DECIMAL_MIXED = "period_decimal_mixed"


def _compact(token: str | None) -> str:
    return _WHITESPACE_RE.sub("", token or "")


def classify_separators(token: str | None) -> SeparatorRule:
    """Classify a raw numeric token by its separators.

    Parameters
    ----------
    token
        Raw token, whitespace allowed.

    Returns
    -------
    SeparatorRule
        The rule :func:`normalize_amount` applies to the token.

    Examples
    --------
    - ``"1,234"`` -> ``COMMA_THOUSANDS`` (3-character final group)
    - ``"12,5"`` -> ``COMMA_DECIMAL``
    - ``"1.234.567"`` -> ``PERIOD_THOUSANDS``
    - ``"1.234,56"`` -> ``COMMA_DECIMAL_MIXED`` (comma comes last)
    """
    compact = _compact(token)
    if not compact:
        return SeparatorRule.EMPTY

    has_comma = "," in compact
    has_period = "." in compact

    if has_comma and not has_period:
        groups = compact.split(",")
        if len(groups) >= 2 and len(groups[-1]) == 3:
            return SeparatorRule.COMMA_THOUSANDS
        return SeparatorRule.COMMA_DECIMAL

    if has_period and not has_comma:
        groups = compact.split(".")
        if len(groups) > 2 or (len(groups) == 2 and len(groups[-1]) == 3):
            return SeparatorRule.PERIOD_THOUSANDS
        return SeparatorRule.PERIOD_DECIMAL

    if has_comma and has_period:
        if compact.rfind(",") > compact.rfind("."):
            return SeparatorRule.COMMA_DECIMAL_MIXED
        return SeparatorRule.PERIOD_DECIMAL_MIXED

    return SeparatorRule.PLAIN


def _canonical(compact: str, rule: SeparatorRule) -> str:
    """Rewrite a compact token into a ``.``-decimal string."""
    if rule in {SeparatorRule.COMMA_THOUSANDS, SeparatorRule.PERIOD_DECIMAL_MIXED}:
        return compact.replace(",", "")
    if rule == SeparatorRule.COMMA_DECIMAL:
        # Only the first comma becomes the decimal point
        return compact.replace(",", ".", 1)
    if rule == SeparatorRule.PERIOD_THOUSANDS:
        return compact.replace(".", "")
    if rule == SeparatorRule.COMMA_DECIMAL_MIXED:
        return compact.replace(".", "").replace(",", ".")
    return compact


def parse_leading_decimal(text: str | None) -> Decimal:
    """Parse the longest leading decimal literal of ``text``.

    Trailing garbage is ignored and text with no leading number yields zero,
    so ``"1.2.3"`` is ``1.2`` and ``"abc"`` is ``0``.
    """
    match = _LEADING_DECIMAL_RE.match((text or "").strip())
    if not match:
        return ZERO

    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        logger.debug("Could not parse number: %s", text)
        return ZERO

    return value if value.is_finite() else ZERO


def normalize_amount(token: str | None) -> Decimal:
    """Convert a locale-ambiguous numeric token into an exact decimal.

    Rules
    -----
    1. All whitespace is removed; an empty token is zero.
    2. Commas only: a final group of exactly 3 characters marks thousands
       separators (all commas stripped); otherwise the first comma is the
       decimal point.
    3. Periods only: two or more periods, or one period followed by exactly
       3 characters, mark thousands separators; otherwise it is the decimal
       point.
    4. Both: whichever separator appears last is the decimal point and the
       other one is stripped.
    5. No separators: parsed directly.

    The canonical string is parsed leniently; anything unparseable is zero.

    Examples
    --------
    - "1.234" -> 1234
    - "1.23" -> 1.23
    - "1,234" -> 1234
    - "1,234.56" -> 1234.56
    - "1.234,56" -> 1234.56
    - "-12,5" -> -12.5

    Parameters
    ----------
    token
        Raw numeric token as found in linearized text.

    Returns
    -------
    Decimal
        Parsed value, never ``None``.
    """
    rule = classify_separators(token)
    if rule == SeparatorRule.EMPTY:
        return ZERO

    return parse_leading_decimal(_canonical(_compact(token), rule))


def parse_xml_amount(text: str | None) -> Decimal:
    """Parse an ATS element's text (plain ``.`` decimal). Missing -> zero."""
    return parse_leading_decimal(text)


def round_amount(value: Decimal) -> Decimal:
    """Round to two places, half away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Render an amount as a fixed two-decimal string (``"1234.50"``)."""
    return f"{round_amount(value):.2f}"
