"""Merging ATS period summaries across months.

Category tables are unioned by key and their counts and accumulators are
summed. Totals are never carried over: the merged summary recomputes them
from its merged tables, so the credit-note reversal is applied exactly once.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, TypeVar

from sri_fiscal.config import setup_logging
from sri_fiscal.extractor.ats_parser import (
    AtsPeriodSummary,
    IncomeWithholdingSummary,
    PurchaseSummary,
    VatWithholdingSummary,
    sort_vat_withholdings,
)
from sri_fiscal.utils.periods import semester_of

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = setup_logging(__name__)

GROUP_ALL = "all"
GROUP_SEMESTER = "semester"
GROUP_BY_CHOICES = (GROUP_ALL, GROUP_SEMESTER)

_S = TypeVar("_S", PurchaseSummary, IncomeWithholdingSummary, VatWithholdingSummary)


def sort_summaries(summaries: Iterable[AtsPeriodSummary]) -> list[AtsPeriodSummary]:
    """Order summaries by year and month; unknown months go last."""
    return sorted(summaries, key=lambda summary: summary.sort_key)


def _union(tables: Iterable[list[_S]], key: Callable[[_S], str]) -> dict[str, _S]:
    merged: dict[str, _S] = {}
    for table in tables:
        for item in table:
            existing = merged.get(key(item))
            # Copies only, the input summaries stay untouched
            merged[key(item)] = replace(item) if existing is None else existing.merged(item)
    return merged


def consolidation_label(summaries: list[AtsPeriodSummary]) -> str:
    year = summaries[0].year if summaries else ""
    return f"CONSOLIDADO {len(summaries)} PERIODO(S) {year}"


def merge_ats_summaries(summaries: Iterable[AtsPeriodSummary], label: str | None = None) -> AtsPeriodSummary:
    """Merge several period summaries into one.

    Parameters
    ----------
    summaries : Iterable[AtsPeriodSummary]
        Summaries in any order; none of them is modified.
    label : str | None, optional
        Period label of the result; defaults to
        ``"CONSOLIDADO <n> PERIODO(S) <año>"``.

    Returns
    -------
    AtsPeriodSummary
        Metadata of the earliest summary, tables unioned by code (or bucket)
        with summed counts and amounts.

    Raises
    ------
    ValueError
        If ``summaries`` is empty.
    """
    ordered = sort_summaries(summaries)
    if not ordered:
        msg = "No hay datos ATS para consolidar"
        raise ValueError(msg)

    first = ordered[0]
    purchases = _union((summary.purchases for summary in ordered), lambda item: item.code)
    income = _union((summary.income_withholdings for summary in ordered), lambda item: item.code)
    vat = _union((summary.vat_withholdings for summary in ordered), lambda item: item.bucket)

    merged = AtsPeriodSummary(
        taxpayer_id=first.taxpayer_id,
        legal_name=first.legal_name,
        year=first.year,
        month=first.month,
        period_label=label or consolidation_label(ordered),
        source_name=", ".join(summary.source_name for summary in ordered if summary.source_name),
        purchases=[purchases[code] for code in sorted(purchases)],
        income_withholdings=[income[code] for code in sorted(income)],
        vat_withholdings=sort_vat_withholdings(vat.values()),
    )
    logger.debug("Merged %d ATS summaries into %s", len(ordered), merged.period_label)
    return merged


def consolidate_ats(
    summaries: Iterable[AtsPeriodSummary],
    group_by: str = GROUP_ALL,
) -> dict[str, AtsPeriodSummary]:
    """Consolidate summaries into one merge per group.

    Parameters
    ----------
    summaries : Iterable[AtsPeriodSummary]
        Per-document summaries.
    group_by : str, optional
        ``"all"`` merges everything under the key ``"TOTAL"``; ``"semester"``
        merges months 1-6 under ``"S1"`` and 7-12 under ``"S2"``. When the
        summaries span several years each semester is kept per year, keyed
        ``"2023-S2"``, ``"2024-S1"`` and so on.

    Returns
    -------
    dict[str, AtsPeriodSummary]
        Merged summaries keyed by group, in calendar order. Empty input gives
        an empty dict.

    Raises
    ------
    ValueError
        If ``group_by`` is not one of ``"all"`` or ``"semester"``.
    """
    if group_by not in GROUP_BY_CHOICES:
        msg = f"Unknown grouping: {group_by}"
        raise ValueError(msg)

    ordered = sort_summaries(summaries)
    if not ordered:
        return {}

    if group_by == GROUP_ALL:
        return {"TOTAL": merge_ats_summaries(ordered)}

    groups: dict[tuple[str, int], list[AtsPeriodSummary]] = {}
    for summary in ordered:
        if summary.month_number is None:
            logger.warning("%s: month %r outside 01-12, left out of semester groups", summary.source_name, summary.month)
            continue
        groups.setdefault((summary.year, semester_of(summary.month_number)), []).append(summary)

    # Semesters of different years never merge; the year joins the key only when needed
    several_years = len({year for year, _ in groups}) > 1
    ordinals = {1: "1er", 2: "2do"}
    return {
        (f"{year}-S{semester}" if several_years else f"S{semester}"): merge_ats_summaries(
            members, label=f"{ordinals[semester]} SEMESTRE {year}"
        )
        for (year, semester), members in groups.items()
    }
