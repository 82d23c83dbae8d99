"""Document metadata extraction from linearized declaration text.

Each attribute is found by an independent, case-insensitive search over the
whole text. A missing attribute never raises; it is simply left empty.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sri_fiscal.config import setup_logging
from sri_fiscal.utils.periods import MONTH_NAMES, SEMESTER_NAMES

logger = setup_logging(__name__)

DEFAULT_DECLARATION_TYPE = "ORIGINAL"

PERIOD_RE = re.compile(
    rf"\b(?:({'|'.join(MONTH_NAMES)})\s+(\d{{4}})|({'|'.join(SEMESTER_NAMES)})\s+SEMESTRE\s+(\d{{4}}))",
    re.IGNORECASE,
)
DECLARATION_TYPE_RE = re.compile(r"\b(ORIGINAL|SUSTITUTIVA)\b", re.IGNORECASE)
TAXPAYER_ID_RE = re.compile(
    r"(?:IDENTIFICACI[ÓO]N(?:\s+DEL\s+SUJETO\s+PASIVO)?|\bRUC)\s*:?\s*(\d{13})",
    re.IGNORECASE,
)
LEGAL_NAME_RE = re.compile(
    r"RAZ[ÓO]N\s+SOCIAL(?:\s+O\s+APELLIDOS\s+Y\s+NOMBRES\s+COMPLETOS)?\s+"
    r"([A-ZÑÁÉÍÓÚÜ\s]+?)(?:\s+\d{3}|\n|$)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive attributes of one declaration.

    Attributes
    ----------
        period_label: Upper-cased period (``"MARZO 2024"``), ``""`` if absent
        declaration_type: ``ORIGINAL`` or ``SUSTITUTIVA``
        taxpayer_id: 13-digit RUC, when found
        legal_name: Razón social, when found
    """

    period_label: str = ""
    declaration_type: str = DEFAULT_DECLARATION_TYPE
    taxpayer_id: str | None = None
    legal_name: str | None = None


def find_period_label(text: str) -> str:
    """Return the first period label in ``text`` upper-cased, or ``""``."""
    match = PERIOD_RE.search(text)
    if not match:
        return ""
    return " ".join(match.group(0).split()).upper()


def find_declaration_type(text: str) -> str:
    match = DECLARATION_TYPE_RE.search(text)
    return match.group(1).upper() if match else DEFAULT_DECLARATION_TYPE


def find_taxpayer_id(text: str) -> str | None:
    match = TAXPAYER_ID_RE.search(text)
    return match.group(1) if match else None


def find_legal_name(text: str) -> str | None:
    match = LEGAL_NAME_RE.search(text)
    if not match:
        return None
    name = " ".join(match.group(1).split())
    return name or None


def extract_metadata(text: str) -> DocumentMetadata:
    """Extract period, declaration type, taxpayer id and legal name.

    Parameters
    ----------
    text
        Linearized declaration text.

    Returns
    -------
    DocumentMetadata
        Attributes found; absent ones keep their defaults.
    """
    text = text or ""
    metadata = DocumentMetadata(
        period_label=find_period_label(text),
        declaration_type=find_declaration_type(text),
        taxpayer_id=find_taxpayer_id(text),
        legal_name=find_legal_name(text),
    )
    logger.debug(
        "Metadata: period=%r type=%s ruc=%s",
        metadata.period_label,
        metadata.declaration_type,
        metadata.taxpayer_id,
    )
    return metadata
