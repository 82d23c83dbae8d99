"""Presentation data model for consolidated declarations and ATS summaries.

This module provides functions to:
- Map a code -> value map onto a form's row structure
- Build annual pandas frames (one column per period plus the annual total)
- Render plain-text reports for the command-line entry points

Nothing here computes totals; consolidated values are read as-is.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pandas as pd

from sri_fiscal.config import setup_logging
from sri_fiscal.consolidation.aggregator import code_sort_key
from sri_fiscal.extractor.ats_parser import VAT_BUCKET_ORDER
from sri_fiscal.forms.schema import iter_field_codes
from sri_fiscal.utils.parsing import format_amount, round_amount
from sri_fiscal.utils.periods import MONTH_ABBREVIATIONS, MONTH_NAMES

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sri_fiscal.consolidation.aggregator import AnnualConsolidation
    from sri_fiscal.extractor.ats_parser import AtsPeriodSummary
    from sri_fiscal.forms.schema import FormStructure

logger = setup_logging(__name__)

TOTAL_COLUMN = "TOTAL ANUAL"
ATS_TOTAL_COLUMN = "TOTAL"
UNMAPPED_DESCRIPTION = "Casillero no incluido en el formulario"

ATS_SECTIONS = ("purchases", "income_base", "income_withheld", "vat_withheld")


def map_to_structure(values: Mapping[str, Decimal], form: FormStructure) -> list[dict[str, Any]]:
    """Map extracted values onto the form's rows.

    Parameters
    ----------
    values
        Field code -> value (sparse, absent means zero).
    form
        Form schema.

    Returns
    -------
    list[dict[str, Any]]
        One dict per row with ``section``, ``concepto``, ``kind``, ``note``
        and one entry per slot holding ``{"code", "valor"}`` (``None`` for
        slots the row does not use).
    """
    rows = []
    for section in form.sections:
        for row in section.rows:
            entry: dict[str, Any] = {
                "section": section.title,
                "concepto": row.description,
                "kind": row.kind,
                "note": row.note,
            }
            for slot, code in zip(form.slots, row.fields, strict=False):
                entry[slot] = {"code": code, "valor": values.get(code, Decimal(0))} if code else None
            rows.append(entry)
    return rows


def _period_columns(consolidation: AnnualConsolidation) -> tuple[list[str], dict[Any, str]]:
    """Columns for the annual frame and the period -> column mapping."""
    single_year = len({period.year for period in consolidation.periods}) <= 1
    mapping = {
        period: period.column_label if single_year else period.label for period in consolidation.periods
    }

    columns = list(MONTH_NAMES) if single_year else []
    for period in consolidation.periods:
        if mapping[period] not in columns:
            columns.append(mapping[period])
    return columns, mapping


def build_annual_frame(
    consolidation: AnnualConsolidation,
    form: FormStructure,
    slot: str | None = None,
    include_unmapped: bool = True,
) -> pd.DataFrame:
    """Build the annual matrix for one value slot of a form.

    Parameters
    ----------
    consolidation
        Annual consolidation of the batch.
    form
        Form schema; its rows give the order and descriptions.
    slot
        Slot to show (``"valor_neto"``, ``"valor_retenido"``...). Defaults
        to the form's last slot.
    include_unmapped
        Append codes present in the data but absent from the form.

    Returns
    -------
    pd.DataFrame
        Columns ``Casillero``, ``Descripción``, one per calendar month (plus
        semester columns when present) and ``TOTAL ANUAL``. Amounts are
        floats rounded to two decimals.
    """
    slot = slot or form.slots[-1]
    index = form.slot_index(slot)
    columns, mapping = _period_columns(consolidation)

    def build_row(code: str, description: str) -> dict[str, Any]:
        row: dict[str, Any] = {"Casillero": code, "Descripción": description}
        row.update(dict.fromkeys(columns, 0.0))
        for period in consolidation.periods:
            row[mapping[period]] = float(round_amount(consolidation.value(code, period)))
        row[TOTAL_COLUMN] = float(consolidation.totals.get(code, Decimal(0)))
        return row

    rows = []
    mapped: set[str] = set()
    for section in form.sections:
        for form_row in section.rows:
            code = form_row.fields[index] if index < len(form_row.fields) else None
            if not code:
                continue
            mapped.add(code)
            rows.append(build_row(code, form_row.description))

    if include_unmapped:
        for code in consolidation.codes:
            if code not in mapped:
                rows.append(build_row(code, UNMAPPED_DESCRIPTION))

    logger.debug("Annual frame for form %s/%s: %d rows", form.form, slot, len(rows))
    return pd.DataFrame(rows, columns=["Casillero", "Descripción", *columns, TOTAL_COLUMN])


def _ats_section_values(summary: AtsPeriodSummary, section: str) -> dict[str, tuple[str, Decimal]]:
    """Key -> (description, value) for one section of one summary."""
    if section == "purchases":
        return {item.code: (item.description, item.sign * item.base_total) for item in summary.purchases}
    if section == "income_base":
        return {item.code: (item.description, item.base) for item in summary.income_withholdings}
    if section == "income_withheld":
        return {item.code: (item.description, item.withheld) for item in summary.income_withholdings}
    if section == "vat_withheld":
        return {item.bucket: (item.concept, item.withheld) for item in summary.vat_withholdings}

    msg = f"Unknown ATS section: {section} (expected one of {', '.join(ATS_SECTIONS)})"
    raise ValueError(msg)


def build_ats_annual_frame(summaries: Iterable[AtsPeriodSummary], section: str = "purchases") -> pd.DataFrame:
    """Build the month-by-month matrix of one ATS section.

    Parameters
    ----------
    summaries
        Per-month summaries (not merged ones).
    section
        ``"purchases"`` (total taxable base, credit notes negated),
        ``"income_base"``, ``"income_withheld"`` or ``"vat_withheld"``.

    Returns
    -------
    pd.DataFrame
        Columns ``Código``, ``Descripción``, ``ENE`` ... ``DIC`` and
        ``TOTAL``; summaries without a valid month are left out.
    """
    if section not in ATS_SECTIONS:
        msg = f"Unknown ATS section: {section} (expected one of {', '.join(ATS_SECTIONS)})"
        raise ValueError(msg)

    cells: dict[str, dict[str, Decimal]] = {}
    descriptions: dict[str, str] = {}

    for summary in summaries:
        month = summary.month_number
        if month is None:
            continue
        column = MONTH_ABBREVIATIONS[month - 1]
        for key, (description, value) in _ats_section_values(summary, section).items():
            descriptions.setdefault(key, description)
            month_cells = cells.setdefault(key, {})
            month_cells[column] = month_cells.get(column, Decimal(0)) + value

    if section == "vat_withheld":
        keys = sorted(cells, key=lambda bucket: VAT_BUCKET_ORDER.index(bucket) if bucket in VAT_BUCKET_ORDER else 99)
    else:
        keys = sorted(cells)

    rows = []
    for key in keys:
        row: dict[str, Any] = {"Código": key, "Descripción": descriptions[key]}
        for column in MONTH_ABBREVIATIONS:
            row[column] = float(round_amount(cells[key].get(column, Decimal(0))))
        row[ATS_TOTAL_COLUMN] = float(round_amount(sum(cells[key].values(), Decimal(0))))
        rows.append(row)

    return pd.DataFrame(rows, columns=["Código", "Descripción", *MONTH_ABBREVIATIONS, ATS_TOTAL_COLUMN])


# =============================================================================
# Text reports
# =============================================================================


def format_annual_report(consolidation: AnnualConsolidation, form: FormStructure | None = None) -> str:
    """Render the consolidated totals as a plain-text report.

    Parameters
    ----------
    consolidation
        Annual consolidation of the batch.
    form
        When given, codes are listed in form order with their row
        descriptions; otherwise in numeric order.

    Returns
    -------
    str
        Multi-line report.
    """
    lines = [
        "=" * 78,
        f"REPORTE ANUAL CONSOLIDADO {consolidation.year or ''}".rstrip(),
        "=" * 78,
        f"RUC: {consolidation.taxpayer_id or '-'}",
        f"Razón social: {consolidation.legal_name or '-'}",
        f"Periodos ({len(consolidation.periods)}): " + ", ".join(period.label for period in consolidation.periods),
        "-" * 78,
    ]

    descriptions: dict[str, str] = {}
    if form is not None:
        for code, _section, row, _slot in iter_field_codes(form):
            descriptions.setdefault(code, row.description)

    order = list(descriptions) if form is not None else []
    order += sorted((code for code in consolidation.totals if code not in descriptions), key=code_sort_key)

    for code in order:
        if code not in consolidation.totals:
            continue
        description = descriptions.get(code, "")
        if len(description) > 52:
            description = description[:50] + ".."
        lines.append(f"{code:>5}  {description:<54} {format_amount(consolidation.totals[code]):>15}")

    if not consolidation.totals:
        lines.append("Sin valores extraídos")
    lines.append("=" * 78)
    return "\n".join(lines)


def format_ats_report(summary: AtsPeriodSummary) -> str:
    """Render one (possibly merged) ATS summary as plain text."""
    totals = summary.totals
    lines = [
        "=" * 78,
        f"TALÓN ATS - {summary.period_label}",
        "=" * 78,
        f"RUC: {summary.taxpayer_id or '-'}",
        f"Razón social: {summary.legal_name or '-'}",
        "",
        "COMPRAS",
        f"{'Cod':<4} {'Tipo':<24} {'Nº':>4} {'BI 0%':>11} {'BI IVA':>11} {'No objeto':>11} {'IVA':>9}",
    ]
    for item in summary.purchases:
        lines.append(
            f"{item.code:<4} {item.description[:24]:<24} {item.count:>4} "
            f"{format_amount(item.base_zero_rate):>11} {format_amount(item.base_standard_rate):>11} "
            f"{format_amount(item.base_non_taxable):>11} {format_amount(item.vat_amount):>9}",
        )
    purchases = totals.purchases
    lines.append(
        f"{'TOTAL':<29} {purchases.count:>4} {format_amount(purchases.base_zero_rate):>11} "
        f"{format_amount(purchases.base_standard_rate):>11} {format_amount(purchases.base_non_taxable):>11} "
        f"{format_amount(purchases.vat_amount):>9}",
    )

    lines += ["", "RETENCIONES RENTA", f"{'Cod':<5} {'Concepto':<40} {'Nº':>4} {'Base':>12} {'Retenido':>12}"]
    for item in summary.income_withholdings:
        lines.append(
            f"{item.code:<5} {item.description[:40]:<40} {item.count:>4} "
            f"{format_amount(item.base):>12} {format_amount(item.withheld):>12}",
        )
    lines.append(
        f"{'TOTAL':<51} {format_amount(totals.income_base):>12} {format_amount(totals.income_withheld):>12}",
    )

    lines += ["", "RETENCIONES IVA", f"{'Operación':<10} {'Concepto':<40} {'Retenido':>12}"]
    for item in summary.vat_withholdings:
        lines.append(f"{item.operation:<10} {item.concept:<40} {format_amount(item.withheld):>12}")
    lines.append(f"{'TOTAL':<51} {format_amount(totals.vat_withheld):>12}")
    lines.append("=" * 78)
    return "\n".join(lines)
