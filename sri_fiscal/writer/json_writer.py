"""JSON and CSV output for consolidated declarations and ATS summaries.

Naming convention (patterns from ``config.json`` ``output``):
- declaraciones_104_2024.json
- anual_104_valor_neto_2024.csv
- ats_all_2024.json / ats_semester_2024.json

Amounts are written as two-decimal strings so no precision is lost in JSON.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sri_fiscal.config import DATA_DIR, get_output_settings, setup_logging
from sri_fiscal.utils.parsing import format_amount

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    import pandas as pd

    from sri_fiscal.consolidation.aggregator import AnnualConsolidation
    from sri_fiscal.consolidation.records import PeriodRecord
    from sri_fiscal.extractor.ats_parser import AtsPeriodSummary
    from sri_fiscal.extractor.results import DocumentFailure

logger = setup_logging(__name__)


def _output_dir(output_dir: Path | None) -> Path:
    if output_dir is not None:
        save_dir = output_dir
    else:
        save_dir = DATA_DIR / get_output_settings()["subdirectory"]
    save_dir.mkdir(parents=True, exist_ok=True)
    return save_dir


def _write_json(filepath: Path, payload: dict[str, Any]) -> Path:
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
    return filepath


def failures_to_list(failures: Iterable[DocumentFailure]) -> list[dict[str, str]]:
    return [
        {"document_id": failure.document_id, "reason": failure.reason.value, "message": failure.message}
        for failure in failures
    ]


def record_to_dict(record: PeriodRecord) -> dict[str, Any]:
    return {
        "period": record.period.label,
        "source_name": record.source_name,
        "declaration_type": record.declaration_type,
        "taxpayer_id": record.taxpayer_id,
        "legal_name": record.legal_name,
        "fields": {code: format_amount(value) for code, value in record.fields.items()},
    }


def consolidation_to_dict(consolidation: AnnualConsolidation, form: str | None = None) -> dict[str, Any]:
    """Serialize an annual consolidation to plain JSON types.

    Parameters
    ----------
    consolidation
        Annual consolidation of the batch.
    form
        Form number, recorded for reference.

    Returns
    -------
    dict[str, Any]
        Metadata, ordered period labels, per-period records and totals.
    """
    return {
        "form": form,
        "year": consolidation.year,
        "taxpayer_id": consolidation.taxpayer_id,
        "legal_name": consolidation.legal_name,
        "periods": [period.label for period in consolidation.periods],
        "records": [record_to_dict(record) for record in consolidation.records],
        "totals": {code: format_amount(value) for code, value in consolidation.totals.items()},
    }


def ats_summary_to_dict(summary: AtsPeriodSummary) -> dict[str, Any]:
    """Serialize an ATS summary, including its computed totals."""
    totals = summary.totals
    return {
        "taxpayer_id": summary.taxpayer_id,
        "legal_name": summary.legal_name,
        "year": summary.year,
        "month": summary.month,
        "period_label": summary.period_label,
        "source_name": summary.source_name,
        "purchases": [
            {
                "code": item.code,
                "description": item.description,
                "count": item.count,
                "base_zero_rate": format_amount(item.base_zero_rate),
                "base_standard_rate": format_amount(item.base_standard_rate),
                "base_non_taxable": format_amount(item.base_non_taxable),
                "vat_amount": format_amount(item.vat_amount),
            }
            for item in summary.purchases
        ],
        "income_withholdings": [
            {
                "code": item.code,
                "description": item.description,
                "count": item.count,
                "base": format_amount(item.base),
                "withheld": format_amount(item.withheld),
            }
            for item in summary.income_withholdings
        ],
        "vat_withholdings": [
            {
                "bucket": item.bucket,
                "operation": item.operation,
                "concept": item.concept,
                "withheld": format_amount(item.withheld),
            }
            for item in summary.vat_withholdings
        ],
        "totals": {
            "purchases": {
                "count": totals.purchases.count,
                "base_zero_rate": format_amount(totals.purchases.base_zero_rate),
                "base_standard_rate": format_amount(totals.purchases.base_standard_rate),
                "base_non_taxable": format_amount(totals.purchases.base_non_taxable),
                "vat_amount": format_amount(totals.purchases.vat_amount),
            },
            "income_base": format_amount(totals.income_base),
            "income_withheld": format_amount(totals.income_withheld),
            "vat_withheld": format_amount(totals.vat_withheld),
        },
    }


def save_consolidation(
    consolidation: AnnualConsolidation,
    form: str,
    output_dir: Path | None = None,
    failures: Iterable[DocumentFailure] = (),
) -> Path:
    """Save a declaration consolidation as JSON.

    Parameters
    ----------
    consolidation
        Annual consolidation of the batch.
    form
        Form number (``"104"`` or ``"103"``), used in the file name.
    output_dir
        Custom output directory; defaults to ``DATA_DIR/processed``.
    failures
        Per-document failures to record next to the data.

    Returns
    -------
    Path
        Location of the written JSON file.
    """
    save_dir = _output_dir(output_dir)
    pattern = get_output_settings()["declarations_file_pattern"]
    filepath = save_dir / pattern.format(form=form, year=consolidation.year or "sin_periodo")

    output = {
        "generated_at": datetime.now(UTC).isoformat(timespec="seconds"),
        "content": consolidation_to_dict(consolidation, form),
        "failures": failures_to_list(failures),
    }
    _write_json(filepath, output)

    logger.info("Saved consolidation: %s", filepath)
    return filepath


def save_ats_consolidation(
    consolidated: Mapping[str, AtsPeriodSummary],
    summaries: Iterable[AtsPeriodSummary],
    group_by: str,
    output_dir: Path | None = None,
    failures: Iterable[DocumentFailure] = (),
) -> Path:
    """Save per-month ATS summaries and their merges as JSON.

    Parameters
    ----------
    consolidated
        Merged summaries keyed by group (``"TOTAL"``, ``"S1"``...).
    summaries
        Per-document summaries in calendar order.
    group_by
        Grouping used for ``consolidated``; part of the file name.
    output_dir
        Custom output directory; defaults to ``DATA_DIR/processed``.
    failures
        Per-document failures to record next to the data.

    Returns
    -------
    Path
        Location of the written JSON file.
    """
    summaries = list(summaries)
    save_dir = _output_dir(output_dir)
    year = summaries[0].year if summaries else "sin_periodo"
    pattern = get_output_settings()["ats_file_pattern"]
    filepath = save_dir / pattern.format(group=group_by, year=year or "sin_periodo")

    output = {
        "generated_at": datetime.now(UTC).isoformat(timespec="seconds"),
        "group_by": group_by,
        "periods": [ats_summary_to_dict(summary) for summary in summaries],
        "consolidated": {key: ats_summary_to_dict(summary) for key, summary in consolidated.items()},
        "failures": failures_to_list(failures),
    }
    _write_json(filepath, output)

    logger.info("Saved ATS consolidation: %s", filepath)
    return filepath


def write_annual_csv(
    frame: pd.DataFrame,
    form: str,
    slot: str,
    year: int | None,
    output_dir: Path | None = None,
) -> Path:
    """Write an annual frame (see ``build_annual_frame``) to CSV."""
    save_dir = _output_dir(output_dir)
    pattern = get_output_settings()["annual_csv_pattern"]
    filepath = save_dir / pattern.format(form=form, slot=slot, year=year or "sin_periodo")

    frame.to_csv(filepath, index=False, encoding="utf-8")

    logger.info("Saved annual CSV: %s", filepath)
    return filepath


def load_output_json(filepath: Path) -> dict[str, Any]:
    """Load a JSON file previously written by this module."""
    if not filepath.exists():
        msg = f"Output file not found: {filepath}"
        raise FileNotFoundError(msg)

    with filepath.open(encoding="utf-8") as f:
        return json.load(f)  # type: ignore[no-any-return]
