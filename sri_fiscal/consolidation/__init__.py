"""Consolidation of extracted documents into per-period records and annual totals.

Key exports:
    PeriodRecord / build_period_record: One declaration -> one period record
    aggregate_records: Period records -> AnnualConsolidation
    merge_ats_summaries / consolidate_ats: ATS summaries -> merged summaries
    process_declaration_batch / process_ats_batch: Parallel batch entry points
"""

from sri_fiscal.consolidation.aggregator import AnnualConsolidation, aggregate_records
from sri_fiscal.consolidation.ats_merge import consolidate_ats, merge_ats_summaries
from sri_fiscal.consolidation.batch import (
    AtsBatchResult,
    BatchStatus,
    DeclarationBatchResult,
    process_ats_batch,
    process_declaration_batch,
)
from sri_fiscal.consolidation.records import PeriodRecord, build_period_record

__all__ = [
    "AnnualConsolidation",
    "AtsBatchResult",
    "BatchStatus",
    "DeclarationBatchResult",
    "PeriodRecord",
    "aggregate_records",
    "build_period_record",
    "consolidate_ats",
    "merge_ats_summaries",
    "process_ats_batch",
    "process_declaration_batch",
]
