"""Shared utility functions for sri_fiscal package."""

from sri_fiscal.utils.parsing import (
    SeparatorRule,
    classify_separators,
    format_amount,
    normalize_amount,
    parse_leading_decimal,
    parse_xml_amount,
    round_amount,
)
from sri_fiscal.utils.periods import MONTH_NAMES, PeriodKey, month_name, semester_of, sort_periods

__all__ = [
    "MONTH_NAMES",
    "PeriodKey",
    "SeparatorRule",
    "classify_separators",
    "format_amount",
    "month_name",
    "normalize_amount",
    "parse_leading_decimal",
    "parse_xml_amount",
    "round_amount",
    "semester_of",
    "sort_periods",
]
