"""Multi-period aggregation of declaration records into annual totals.

Totals are recomputed from the records passed in on every call; nothing is
accumulated across calls. Sums are exact and each total is rounded to two
decimals once, after summing.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from sri_fiscal.config import setup_logging
from sri_fiscal.utils.parsing import round_amount

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sri_fiscal.consolidation.records import PeriodRecord
    from sri_fiscal.utils.periods import PeriodKey

logger = setup_logging(__name__)


def code_sort_key(code: str) -> tuple[int, str]:
    """Numeric ordering for field codes (``"99"`` < ``"401"`` < ``"3030"``)."""
    return (int(code), code) if code.isdigit() else (10**9, code)


@dataclass
class AnnualConsolidation:
    """Consolidated view of a batch of period records.

    Attributes
    ----------
        periods: Distinct periods in canonical order
        records: Records in canonical order (ties keep submission order)
        totals: Per-code sums rounded to two decimals
        taxpayer_id: First RUC found in submission order
        legal_name: First legal name found in submission order
    """

    periods: tuple[PeriodKey, ...] = ()
    records: tuple[PeriodRecord, ...] = ()
    totals: dict[str, Decimal] = field(default_factory=dict)
    taxpayer_id: str | None = None
    legal_name: str | None = None

    @property
    def codes(self) -> list[str]:
        return list(self.totals)

    @property
    def year(self) -> int | None:
        """Most common fiscal year among the periods (earliest on ties)."""
        if not self.periods:
            return None
        counts = Counter(period.year for period in self.periods)
        return min(counts, key=lambda year: (-counts[year], year))

    @property
    def is_empty(self) -> bool:
        return not self.records

    def value(self, code: str, period: PeriodKey) -> Decimal:
        """Exact value of ``code`` in ``period`` (summed if several records)."""
        return sum(
            (record.value(code) for record in self.records if record.period == period),
            Decimal(0),
        )


def aggregate_records(records: Iterable[PeriodRecord]) -> AnnualConsolidation:
    """Merge period records into an :class:`AnnualConsolidation`.

    Parameters
    ----------
    records
        Period records in submission order.

    Returns
    -------
    AnnualConsolidation
        Periods and records in canonical order and rounded totals, none of
        which depend on input order. The taxpayer id and legal name come from
        the first record, in submission order, that carries them.
    """
    records = list(records)
    taxpayer_id: str | None = None
    legal_name: str | None = None

    # Earlier submissions win; later ones never overwrite
    for record in records:
        if not taxpayer_id and record.taxpayer_id:
            taxpayer_id = record.taxpayer_id
        if not legal_name and record.legal_name:
            legal_name = record.legal_name

    ordered = sorted(records, key=lambda record: record.period.sort_key)

    sums: dict[str, Decimal] = {}
    for record in ordered:
        for code, value in record.fields.items():
            sums[code] = sums.get(code, Decimal(0)) + value

    periods: list[PeriodKey] = []
    for record in ordered:
        if record.period not in periods:
            periods.append(record.period)

    totals = {code: round_amount(sums[code]) for code in sorted(sums, key=code_sort_key)}

    logger.debug("Aggregated %d records over %d periods, %d codes", len(ordered), len(periods), len(totals))
    return AnnualConsolidation(
        periods=tuple(periods),
        records=tuple(ordered),
        totals=totals,
        taxpayer_id=taxpayer_id,
        legal_name=legal_name,
    )
