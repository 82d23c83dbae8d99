"""Extractor module for declaration text, ATS XML and PDF linearization.

Key exports:
    extract_fields: Sparse field-code -> value map from linearized text
    extract_metadata: Period, declaration type, RUC and legal name
    parse_ats_document: ATS XML -> AtsPeriodSummary (lxml)
    extract_ats_document: Same, with malformation reported as a failure value
    ExtractionOutcome: Tagged success/failure result of one document
    read_declaration_text: PDF (pdfplumber) or text file -> linearized text
"""

from sri_fiscal.extractor.ats_parser import (
    CREDIT_NOTE_CODE,
    VAT_BUCKETS,
    AtsPeriodSummary,
    AtsStructureError,
    AtsTotals,
    IncomeWithholdingSummary,
    PurchaseSummary,
    PurchaseTotals,
    VatWithholdingSummary,
    build_period_label,
    compute_totals,
    extract_ats_document,
    parse_ats_document,
)
from sri_fiscal.extractor.field_extractor import FieldToken, extract_fields, iter_field_tokens
from sri_fiscal.extractor.metadata import DocumentMetadata, extract_metadata
from sri_fiscal.extractor.pdf_parser import extract_text_from_pdf, linearize_pdf, read_declaration_text, words_to_lines
from sri_fiscal.extractor.results import DocumentFailure, ExtractionOutcome, FailureReason

__all__ = [
    "CREDIT_NOTE_CODE",
    "VAT_BUCKETS",
    "AtsPeriodSummary",
    "AtsStructureError",
    "AtsTotals",
    "DocumentFailure",
    "DocumentMetadata",
    "ExtractionOutcome",
    "FailureReason",
    "FieldToken",
    "IncomeWithholdingSummary",
    "PurchaseSummary",
    "PurchaseTotals",
    "VatWithholdingSummary",
    "build_period_label",
    "compute_totals",
    "extract_ats_document",
    "extract_fields",
    "extract_metadata",
    "extract_text_from_pdf",
    "iter_field_tokens",
    "linearize_pdf",
    "parse_ats_document",
    "read_declaration_text",
    "words_to_lines",
]
