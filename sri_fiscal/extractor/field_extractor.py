"""Field-code/value scanning of linearized declaration text.

A declaration line such as ``401 1.234,56  411 1.200,00`` carries one or
more ``<code> <amount>`` pairs. Codes are 3-4 digits; amounts may use either
locale's separators and are resolved by :func:`normalize_amount`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sri_fiscal.config import setup_logging
from sri_fiscal.utils.parsing import normalize_amount

if TYPE_CHECKING:
    from collections.abc import Iterator
    from decimal import Decimal

logger = setup_logging(__name__)

FIELD_TOKEN_RE = re.compile(r"(\d{3,4})\s+(-?[\d.,]+)")


@dataclass(frozen=True)
class FieldToken:
    """One ``<code> <amount>`` pair found in the text."""

    code: str
    raw_value: str
    value: Decimal
    line_number: int


def iter_field_tokens(text: str) -> Iterator[FieldToken]:
    """Yield every code/amount pair, line by line, left to right.

    Parameters
    ----------
    text
        Linearized text; may hold a single line or a whole document.

    Yields
    ------
    FieldToken
        Pairs in reading order, including zero-valued ones.
    """
    for line_number, line in enumerate((text or "").splitlines(), start=1):
        for match in FIELD_TOKEN_RE.finditer(line):
            code, raw_value = match.groups()
            yield FieldToken(code, raw_value, normalize_amount(raw_value), line_number)


def extract_fields(text: str) -> dict[str, Decimal]:
    """Build the sparse field-code -> value map of a document.

    The first non-zero occurrence of a code wins; zero values are never
    stored, so an absent code means zero.

    Parameters
    ----------
    text
        Linearized declaration text.

    Returns
    -------
    dict[str, Decimal]
        Field values keyed by code, in order of first appearance.
    """
    fields: dict[str, Decimal] = {}
    for token in iter_field_tokens(text):
        if token.value != 0 and token.code not in fields:
            fields[token.code] = token.value

    logger.debug("Extracted %d fields", len(fields))
    return fields
