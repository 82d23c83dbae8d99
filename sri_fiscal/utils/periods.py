"""Reporting-period keys and their canonical ordering.

Declarations cover a calendar month (``ENERO 2024``) or a semester
(``PRIMER SEMESTRE 2024``). Both kinds share one ordering so monthly and
semester records can be sorted together: by year, then by the month the
period ends in, then monthly before semester.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MONTHLY = "monthly"
SEMESTER = "semester"

MONTH_NAMES: tuple[str, ...] = (
    "ENERO",
    "FEBRERO",
    "MARZO",
    "ABRIL",
    "MAYO",
    "JUNIO",
    "JULIO",
    "AGOSTO",
    "SEPTIEMBRE",
    "OCTUBRE",
    "NOVIEMBRE",
    "DICIEMBRE",
)
MONTH_ABBREVIATIONS: tuple[str, ...] = tuple(name[:3] for name in MONTH_NAMES)
SEMESTER_NAMES: tuple[str, ...] = ("PRIMER", "SEGUNDO")

_MONTH_LABEL_RE = re.compile(rf"^({'|'.join(MONTH_NAMES)})\s+(\d{{4}})$")
_SEMESTER_LABEL_RE = re.compile(rf"^({'|'.join(SEMESTER_NAMES)})\s+SEMESTRE\s+(\d{{4}})$")


def month_name(month: int) -> str | None:
    """Return the Spanish month name for 1-12, ``None`` otherwise."""
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return None


def semester_of(month: int) -> int:
    """Return 1 for January-June and 2 for July-December."""
    return 1 if month <= 6 else 2


@dataclass(frozen=True)
class PeriodKey:
    """A single reporting period.

    Attributes
    ----------
        kind: ``"monthly"`` or ``"semester"``
        number: Month (1-12) or semester (1-2)
        year: Four-digit fiscal year
    """

    kind: str
    number: int
    year: int

    def __post_init__(self) -> None:
        upper = 12 if self.kind == MONTHLY else 2
        if self.kind not in {MONTHLY, SEMESTER} or not 1 <= self.number <= upper:
            msg = f"Invalid period: {self.kind} {self.number}"
            raise ValueError(msg)

    @classmethod
    def monthly(cls, month: int, year: int) -> PeriodKey:
        return cls(MONTHLY, month, year)

    @classmethod
    def semester(cls, semester: int, year: int) -> PeriodKey:
        return cls(SEMESTER, semester, year)

    @classmethod
    def from_label(cls, label: str) -> PeriodKey | None:
        """Resolve ``"MARZO 2024"`` or ``"SEGUNDO SEMESTRE 2023"`` to a key.

        Parameters
        ----------
        label
            Period label; case and inner whitespace are ignored.

        Returns
        -------
        PeriodKey | None
            Resolved key, or ``None`` when the label names no period.
        """
        normalized = " ".join((label or "").upper().split())

        month_match = _MONTH_LABEL_RE.match(normalized)
        if month_match:
            return cls.monthly(MONTH_NAMES.index(month_match.group(1)) + 1, int(month_match.group(2)))

        semester_match = _SEMESTER_LABEL_RE.match(normalized)
        if semester_match:
            return cls.semester(SEMESTER_NAMES.index(semester_match.group(1)) + 1, int(semester_match.group(2)))

        return None

    @property
    def end_month(self) -> int:
        """Calendar month the period ends in (semester 1 -> 6, semester 2 -> 12)."""
        if self.kind == MONTHLY:
            return self.number
        return self.number * 6

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (self.year, self.end_month, 0 if self.kind == MONTHLY else 1)

    @property
    def label(self) -> str:
        if self.kind == MONTHLY:
            return f"{MONTH_NAMES[self.number - 1]} {self.year}"
        return f"{SEMESTER_NAMES[self.number - 1]} SEMESTRE {self.year}"

    @property
    def column_label(self) -> str:
        """Label without the year, used as an annual-frame column header."""
        if self.kind == MONTHLY:
            return MONTH_NAMES[self.number - 1]
        return f"{SEMESTER_NAMES[self.number - 1]} SEMESTRE"

    def __str__(self) -> str:
        return self.label


def sort_periods(periods: list[PeriodKey] | set[PeriodKey] | tuple[PeriodKey, ...]) -> list[PeriodKey]:
    """Return distinct periods in canonical order."""
    return sorted(set(periods), key=lambda period: period.sort_key)
