"""Extraction result types.

This module contains pure data structures with no business logic dependencies,
so both extractors and the batch layer can import them without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

__all__ = [
    "DocumentFailure",
    "ExtractionOutcome",
    "FailureReason",
]

T = TypeVar("T")


class FailureReason(Enum):
    """Why a single document produced no usable record."""

    READ_ERROR = "read_error"
    MISSING_PERIOD = "missing_period"
    MALFORMED_DOCUMENT = "malformed_document"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class DocumentFailure:
    """Per-document failure reported alongside the batch results.

    Attributes
    ----------
        document_id: Identifier the caller submitted the document under
        reason: Failure category
        message: Human-readable detail (Spanish messages are passed through)
    """

    document_id: str
    reason: FailureReason
    message: str

    def __str__(self) -> str:
        return f"{self.document_id}: {self.message} ({self.reason.value})"


@dataclass(frozen=True)
class ExtractionOutcome(Generic[T]):
    """Tagged result of extracting one document: either a value or a failure.

    ``warnings`` carries soft notes (e.g. an irrelevant-looking form) that do
    not prevent the value from being used.
    """

    document_id: str
    value: T | None = None
    failure: DocumentFailure | None = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def success(cls, document_id: str, value: T, warnings: tuple[str, ...] = ()) -> ExtractionOutcome[T]:
        return cls(document_id=document_id, value=value, warnings=warnings)

    @classmethod
    def failed(cls, document_id: str, reason: FailureReason, message: str) -> ExtractionOutcome[T]:
        return cls(document_id=document_id, failure=DocumentFailure(document_id, reason, message))

    @property
    def ok(self) -> bool:
        return self.failure is None and self.value is not None
