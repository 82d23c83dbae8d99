"""PDF linearization using pdfplumber.

The extraction engine works on plain text; this adapter turns a declaration
PDF into that text before the engine is invoked. Words are read top to
bottom; words whose tops sit within ``Y_TOLERANCE`` points of the previous
word share a visual row and are joined left to right with single spaces.
Rows are separated by newlines and pages are concatenated in order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pdfplumber

from sri_fiscal.config import setup_logging

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = setup_logging(__name__)

PDF_SUFFIXES = {".pdf"}

# Points; words whose tops differ by no more than this share a row
Y_TOLERANCE = 5


def words_to_lines(words: Iterable[dict[str, Any]], y_tolerance: float = Y_TOLERANCE) -> list[str]:
    """Group positioned words into text rows in reading order.

    Parameters
    ----------
    words : Iterable[dict[str, Any]]
        Words as returned by ``pdfplumber.Page.extract_words``; only the
        ``text``, ``x0`` and ``top`` keys are used.
    y_tolerance : float, optional
        Largest vertical gap between consecutive words of one row.

    Returns
    -------
    list[str]
        One string per row, top row first.
    """
    rows: list[list[dict[str, Any]]] = []
    last_top: float | None = None
    for word in sorted(words, key=lambda w: (float(w["top"]), float(w["x0"]))):
        top = float(word["top"])
        if last_top is None or abs(top - last_top) > y_tolerance:
            rows.append([])
        rows[-1].append(word)
        last_top = top

    return [" ".join(w["text"] for w in sorted(row, key=lambda w: float(w["x0"]))) for row in rows]


def extract_text_from_pdf(
    file_path: Path,
    pages: list[int] | None = None,
) -> dict[int, str]:
    """Linearize PDF pages into newline-separated rows.

    Parameters
    ----------
    file_path : Path
        PDF to read.
    pages : list[int] | None, optional
        One-indexed pages to extract; ``None`` processes all pages.

    Returns
    -------
    dict[int, str]
        Mapping of one-indexed page numbers to their text; a page without
        words maps to ``""``.

    Raises
    ------
    FileNotFoundError
        If ``file_path`` does not exist.
    """
    if not file_path.exists():
        msg = f"PDF file not found: {file_path}"
        raise FileNotFoundError(msg)

    logger.info("Linearizing PDF: %s", file_path.name)
    result: dict[int, str] = {}

    with pdfplumber.open(file_path) as pdf:
        total_pages = len(pdf.pages)
        wanted = range(1, total_pages + 1) if pages is None else [p for p in pages if 0 < p <= total_pages]

        for number in wanted:
            lines = words_to_lines(pdf.pages[number - 1].extract_words())
            result[number] = "\n".join(lines)
            logger.debug("Page %d/%d: %d rows", number, total_pages, len(lines))

    return result


def linearize_pdf(file_path: Path) -> str:
    """Return the whole PDF as one newline-separated text."""
    pages = extract_text_from_pdf(file_path)
    return "\n".join(pages[number] for number in sorted(pages))


def read_declaration_text(file_path: Path) -> str:
    """Read a declaration as text: PDFs are linearized, anything else is UTF-8.

    Raises
    ------
    FileNotFoundError
        If ``file_path`` does not exist.
    """
    if file_path.suffix.lower() in PDF_SUFFIXES:
        return linearize_pdf(file_path)

    if not file_path.exists():
        msg = f"Declaration file not found: {file_path}"
        raise FileNotFoundError(msg)
    return file_path.read_text(encoding="utf-8", errors="replace")
