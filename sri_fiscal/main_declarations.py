#!/usr/bin/env python3
"""Declaration orchestrator - linearize, extract, consolidate and save.

This module runs the annual consolidation of Formulario 104/103 returns:
1. Read each file (PDFs are linearized with pdfplumber, others read as text)
2. Extract one period record per document in parallel
3. Aggregate the usable records into annual totals
4. Save the consolidated model to JSON (and optionally CSV)
5. Print the annual report

Usage (from project root):
    python -m sri_fiscal.main_declarations data/raw/104_*.pdf
    python -m sri_fiscal.main_declarations data/raw/103_*.pdf --form 103 --csv
    python -m sri_fiscal.main_declarations data/raw/*.txt --no-save --quiet

CLI Flags:
    FILE...             Declaration files (.pdf or linearized .txt)
    --form, -f          Form number: 104 (default) or 103
    --output-dir, -o    Output directory (default: data/processed)
    --csv               Also write one annual CSV per value slot
    --no-save           Don't save JSON output
    --quiet             Suppress report output
    --workers, -w       Extraction thread-pool size (default: config)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path when running directly
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from sri_fiscal.config import setup_logging  # noqa: E402
from sri_fiscal.consolidation.batch import DeclarationBatchResult, process_declaration_batch  # noqa: E402
from sri_fiscal.extractor.pdf_parser import read_declaration_text  # noqa: E402
from sri_fiscal.extractor.results import DocumentFailure, FailureReason  # noqa: E402
from sri_fiscal.forms.schema import FormStructure, available_forms, load_form_structure  # noqa: E402
from sri_fiscal.transformer.formatter import build_annual_frame, format_annual_report  # noqa: E402
from sri_fiscal.writer.json_writer import save_consolidation, write_annual_csv  # noqa: E402

logger = setup_logging(__name__)


def read_documents(paths: list[Path]) -> tuple[list[tuple[str, str]], list[DocumentFailure]]:
    """Read declaration files into ``(file name, text)`` pairs.

    Returns
    -------
    tuple[list[tuple[str, str]], list[DocumentFailure]]
        Readable documents, and one ``READ_ERROR`` failure per file that is
        missing or cannot be linearized (a corrupt PDF, for instance).
    """
    documents = []
    failures = []
    for path in paths:
        try:
            documents.append((path.name, read_declaration_text(path)))
        except Exception as e:
            logger.error("Could not read %s: %s", path, e)
            failures.append(DocumentFailure(path.name, FailureReason.READ_ERROR, str(e) or type(e).__name__))
    return documents, failures


def process_declarations(
    paths: list[Path],
    form: FormStructure,
    save: bool = True,
    csv: bool = False,
    verbose: bool = True,
    output_dir: Path | None = None,
    max_workers: int | None = None,
) -> DeclarationBatchResult:
    """Run the full declaration workflow for a set of files.

    Parameters
    ----------
    paths
        Declaration files.
    form
        Schema of the declared form; drives the relevance warning, the
        report order and the CSV rows.
    save
        Write the consolidated JSON when the batch has usable data.
    csv
        Also write one annual CSV per value slot.
    verbose
        Print the annual report.
    output_dir
        Output directory override.
    max_workers
        Thread-pool size override.

    Returns
    -------
    DeclarationBatchResult
        Batch records, consolidation, failures and status.
    """
    documents, unreadable = read_documents(paths)
    result = process_declaration_batch(
        documents,
        max_workers=max_workers,
        required_prefixes=form.required_prefixes or None,
        unreadable=unreadable,
    )

    for failure in result.failures:
        logger.warning("Skipped %s", failure)

    if not result.ok:
        logger.error("Formulario %s: no usable declarations (%s)", form.form, result.status.value)
        return result

    if save:
        save_consolidation(result.consolidation, form.form, output_dir=output_dir, failures=result.failures)
        if csv:
            for slot in form.slots:
                frame = build_annual_frame(result.consolidation, form, slot)
                write_annual_csv(frame, form.form, slot, result.consolidation.year, output_dir=output_dir)

    if verbose:
        print(format_annual_report(result.consolidation, form))  # noqa: T201

    return result


# =============================================================================
# CLI
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Parse CLI flags and consolidate the given declarations.

    Returns
    -------
    int
        ``0`` when at least one declaration was usable; ``1`` otherwise.
    """
    parser = argparse.ArgumentParser(
        description="Consolidate SRI declarations (Formulario 104/103) into annual totals.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sri_fiscal.main_declarations data/raw/104_*.pdf              # VAT returns
  python -m sri_fiscal.main_declarations data/raw/103_*.pdf --form 103   # Withholding returns
  python -m sri_fiscal.main_declarations data/raw/*.pdf --csv            # Plus annual CSVs
        """,
    )
    parser.add_argument("files", nargs="+", type=Path, metavar="FILE", help="Declaration files (.pdf or .txt)")
    parser.add_argument("--form", "-f", choices=available_forms(), default="104", help="Form number (default: 104)")
    parser.add_argument("--output-dir", "-o", type=Path, default=None, help="Output directory")
    parser.add_argument("--csv", action="store_true", help="Also write annual CSVs")
    parser.add_argument("--no-save", action="store_true", help="Don't save to JSON")
    parser.add_argument("--quiet", action="store_true", help="Don't print report")
    parser.add_argument("--workers", "-w", type=int, default=None, help="Extraction threads (default: config)")

    args = parser.parse_args(argv)

    result = process_declarations(
        args.files,
        load_form_structure(args.form),
        save=not args.no_save,
        csv=args.csv,
        verbose=not args.quiet,
        output_dir=args.output_dir,
        max_workers=args.workers,
    )
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
