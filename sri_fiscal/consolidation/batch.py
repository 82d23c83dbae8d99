"""Batch orchestration: parallel per-document extraction, deterministic merge.

Each submission is processed independently of any earlier one. Documents are
fanned out to a thread pool; outcomes are collected by submission index and
then ordered canonically, so completion order never leaks into the result.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from sri_fiscal.config import get_max_workers, setup_logging
from sri_fiscal.consolidation.aggregator import AnnualConsolidation, aggregate_records
from sri_fiscal.consolidation.ats_merge import GROUP_ALL, consolidate_ats, sort_summaries
from sri_fiscal.consolidation.records import build_period_record
from sri_fiscal.extractor.ats_parser import extract_ats_document
from sri_fiscal.extractor.results import DocumentFailure, ExtractionOutcome, FailureReason

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sri_fiscal.consolidation.records import PeriodRecord
    from sri_fiscal.extractor.ats_parser import AtsPeriodSummary

logger = setup_logging(__name__)

T = TypeVar("T")

Document = tuple[str, "str | bytes"]

NO_USABLE_DATA_MESSAGE = "No se encontraron datos válidos en los archivos procesados"


class BatchStatus(Enum):
    EMPTY_SUBMISSION = "empty_submission"
    NO_USABLE_DATA = "no_usable_data"
    PARTIAL = "partial"
    COMPLETE = "complete"


def batch_status(submitted: int, usable: int) -> BatchStatus:
    """Classify a batch from its submitted and usable document counts."""
    if submitted == 0:
        return BatchStatus.EMPTY_SUBMISSION
    if usable == 0:
        return BatchStatus.NO_USABLE_DATA
    if usable < submitted:
        return BatchStatus.PARTIAL
    return BatchStatus.COMPLETE


@dataclass
class DeclarationBatchResult:
    """Outcome of one declaration batch.

    Attributes
    ----------
        status: Overall batch status
        records: Usable records in canonical period order
        consolidation: Annual totals computed from ``records`` only
        failures: One entry per unusable document, in submission order
        warnings: Soft notes about documents that were still used
    """

    status: BatchStatus
    records: list[PeriodRecord] = field(default_factory=list)
    consolidation: AnnualConsolidation = field(default_factory=AnnualConsolidation)
    failures: list[DocumentFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in {BatchStatus.PARTIAL, BatchStatus.COMPLETE}


@dataclass
class AtsBatchResult:
    """Outcome of one ATS batch.

    ``consolidated`` holds one merged summary per group (``"TOTAL"`` or
    ``"S1"``/``"S2"``).
    """

    status: BatchStatus
    summaries: list[AtsPeriodSummary] = field(default_factory=list)
    consolidated: dict[str, AtsPeriodSummary] = field(default_factory=dict)
    failures: list[DocumentFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in {BatchStatus.PARTIAL, BatchStatus.COMPLETE}


def _extract_safely(
    extract: Callable[[str, str | bytes], ExtractionOutcome[T]],
    document_id: str,
    content: str | bytes,
) -> ExtractionOutcome[T]:
    try:
        return extract(document_id, content)
    except Exception as e:
        logger.exception("Unexpected error extracting %s", document_id)
        return ExtractionOutcome.failed(document_id, FailureReason.UNEXPECTED_ERROR, str(e) or type(e).__name__)


def run_extractions(
    documents: Iterable[Document],
    extract: Callable[[str, str | bytes], ExtractionOutcome[T]],
    max_workers: int | None = None,
) -> list[ExtractionOutcome[T]]:
    """Run ``extract`` over every document in a thread pool.

    Parameters
    ----------
    documents : Iterable[tuple[str, str | bytes]]
        ``(document_id, content)`` pairs.
    extract : Callable
        Per-document extraction returning an :class:`ExtractionOutcome`.
    max_workers : int | None, optional
        Pool size; defaults to ``extraction.max_workers`` from config.

    Returns
    -------
    list[ExtractionOutcome]
        One outcome per document, in submission order.
    """
    documents = list(documents)
    if not documents:
        return []

    workers = max(1, min(max_workers or get_max_workers(), len(documents)))
    outcomes: dict[int, ExtractionOutcome[T]] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_extract_safely, extract, document_id, content): index
            for index, (document_id, content) in enumerate(documents)
        }
        for future in as_completed(futures):
            outcomes[futures[future]] = future.result()

    return [outcomes[index] for index in sorted(outcomes)]


def _as_text(content: str | bytes) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def process_declaration_batch(
    documents: Iterable[Document],
    max_workers: int | None = None,
    required_prefixes: Iterable[str] | None = None,
    unreadable: Iterable[DocumentFailure] = (),
) -> DeclarationBatchResult:
    """Extract and consolidate a batch of linearized declarations.

    Parameters
    ----------
    documents : Iterable[tuple[str, str | bytes]]
        Ordered ``(document_id, text)`` pairs.
    max_workers : int | None, optional
        Thread-pool size.
    required_prefixes : Iterable[str] | None, optional
        Field-code prefixes expected for the form; enables the relevance
        warning of :func:`build_period_record`.
    unreadable : Iterable[DocumentFailure], optional
        Documents the caller could not read; they count as submitted and are
        reported first among the failures.

    Returns
    -------
    DeclarationBatchResult
        Records, annual consolidation, failures and batch status.
    """
    prefixes = tuple(required_prefixes) if required_prefixes is not None else None

    def extract(document_id: str, content: str | bytes) -> ExtractionOutcome[PeriodRecord]:
        return build_period_record(document_id, _as_text(content), required_prefixes=prefixes)

    unreadable = list(unreadable)
    outcomes = run_extractions(documents, extract, max_workers)

    records = [outcome.value for outcome in outcomes if outcome.ok and outcome.value is not None]
    failures = [*unreadable, *(outcome.failure for outcome in outcomes if outcome.failure is not None)]
    warnings = [warning for outcome in outcomes for warning in outcome.warnings]
    submitted = len(outcomes) + len(unreadable)

    status = batch_status(submitted, len(records))
    consolidation = aggregate_records(records)

    if status == BatchStatus.NO_USABLE_DATA:
        logger.warning("%s (%d documents)", NO_USABLE_DATA_MESSAGE, submitted)
    else:
        logger.info(
            "Declaration batch: %d documents, %d records, %d failures (%s)",
            submitted,
            len(records),
            len(failures),
            status.value,
        )

    return DeclarationBatchResult(
        status=status,
        records=list(consolidation.records),
        consolidation=consolidation,
        failures=failures,
        warnings=warnings,
    )


def process_ats_batch(
    documents: Iterable[Document],
    semiannual: bool = False,
    max_workers: int | None = None,
    group_by: str = GROUP_ALL,
    unreadable: Iterable[DocumentFailure] = (),
) -> AtsBatchResult:
    """Parse and consolidate a batch of ATS XML documents.

    Parameters
    ----------
    documents : Iterable[tuple[str, str | bytes]]
        Ordered ``(document_id, xml)`` pairs.
    semiannual : bool, optional
        Label June/December annexes as semesters.
    max_workers : int | None, optional
        Thread-pool size.
    group_by : str, optional
        ``"all"`` or ``"semester"``, see :func:`consolidate_ats`.
    unreadable : Iterable[DocumentFailure], optional
        Documents the caller could not read; they count as submitted and are
        reported first among the failures.

    Returns
    -------
    AtsBatchResult
        Per-document summaries in calendar order, merged summaries, failures
        and batch status.
    """

    def extract(document_id: str, content: str | bytes) -> ExtractionOutcome[AtsPeriodSummary]:
        return extract_ats_document(document_id, content, semiannual=semiannual)

    unreadable = list(unreadable)
    outcomes = run_extractions(documents, extract, max_workers)

    summaries = sort_summaries(outcome.value for outcome in outcomes if outcome.ok and outcome.value is not None)
    failures = [*unreadable, *(outcome.failure for outcome in outcomes if outcome.failure is not None)]
    submitted = len(outcomes) + len(unreadable)
    status = batch_status(submitted, len(summaries))

    if status == BatchStatus.NO_USABLE_DATA:
        logger.warning("%s (%d documents)", NO_USABLE_DATA_MESSAGE, submitted)
    else:
        logger.info(
            "ATS batch: %d documents, %d summaries, %d failures (%s)",
            submitted,
            len(summaries),
            len(failures),
            status.value,
        )

    return AtsBatchResult(
        status=status,
        summaries=summaries,
        consolidated=consolidate_ats(summaries, group_by=group_by),
        failures=failures,
    )
