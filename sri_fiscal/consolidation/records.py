"""Per-period records built from one declaration's text."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import TYPE_CHECKING

from sri_fiscal.config import setup_logging
from sri_fiscal.extractor.field_extractor import extract_fields
from sri_fiscal.extractor.metadata import DEFAULT_DECLARATION_TYPE, extract_metadata
from sri_fiscal.extractor.results import ExtractionOutcome, FailureReason
from sri_fiscal.utils.periods import PeriodKey

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = setup_logging(__name__)

MISSING_PERIOD_MESSAGE = "No se pudo identificar el periodo fiscal"
DEFAULT_MIN_RELEVANT_FIELDS = 5


@dataclass(frozen=True)
class PeriodRecord:
    """Normalized field values of one declaration for one period.

    ``fields`` is sparse and read-only: a code that is absent is zero.
    """

    period: PeriodKey
    source_name: str
    fields: Mapping[str, Decimal] = field(default_factory=dict)
    taxpayer_id: str | None = None
    legal_name: str | None = None
    declaration_type: str = DEFAULT_DECLARATION_TYPE

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def value(self, code: str) -> Decimal:
        return self.fields.get(code, Decimal(0))


def looks_relevant(
    fields: Mapping[str, Decimal],
    required_prefixes: Iterable[str],
    min_fields: int = DEFAULT_MIN_RELEVANT_FIELDS,
) -> bool:
    """Return False when no code starts with a prefix and few fields exist."""
    prefixes = tuple(required_prefixes)
    has_expected_code = any(code.startswith(prefixes) for code in fields)
    return has_expected_code or len(fields) >= min_fields


def build_period_record(
    source_name: str,
    text: str,
    required_prefixes: Iterable[str] | None = None,
    min_fields: int = DEFAULT_MIN_RELEVANT_FIELDS,
) -> ExtractionOutcome[PeriodRecord]:
    """Extract one declaration into a :class:`PeriodRecord`.

    Parameters
    ----------
    source_name
        Identifier of the document (usually its file name).
    text
        Linearized declaration text.
    required_prefixes : Iterable[str] | None, optional
        Field-code prefixes expected for the form (``("3", "4", "5")`` for
        withholding returns). When given, a document with none of them and
        fewer than ``min_fields`` fields is kept but flagged with a warning.
    min_fields : int, optional
        Field count above which the prefix check is skipped.

    Returns
    -------
    ExtractionOutcome[PeriodRecord]
        The record, or a ``MISSING_PERIOD`` failure when no period label
        could be resolved.
    """
    metadata = extract_metadata(text)
    period = PeriodKey.from_label(metadata.period_label) if metadata.period_label else None

    if period is None:
        logger.warning("%s: period not found, skipping document", source_name)
        return ExtractionOutcome.failed(source_name, FailureReason.MISSING_PERIOD, MISSING_PERIOD_MESSAGE)

    fields = extract_fields(text)
    warnings: list[str] = []

    if required_prefixes is not None and not looks_relevant(fields, required_prefixes, min_fields):
        message = f"{source_name}: pocos casilleros reconocidos ({len(fields)}), revise el formulario"
        logger.warning(message)
        warnings.append(message)

    record = PeriodRecord(
        period=period,
        source_name=source_name,
        fields=fields,
        taxpayer_id=metadata.taxpayer_id,
        legal_name=metadata.legal_name,
        declaration_type=metadata.declaration_type,
    )
    logger.debug("%s: %s with %d fields", source_name, period.label, len(fields))
    return ExtractionOutcome.success(source_name, record, tuple(warnings))
