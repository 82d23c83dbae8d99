#!/usr/bin/env python3
"""ATS orchestrator - parse annexes, merge them and save.

Usage (from project root):
    python -m sri_fiscal.main_ats data/raw/ats_*.xml
    python -m sri_fiscal.main_ats data/raw/ats_*.xml --group-by semester
    python -m sri_fiscal.main_ats data/raw/ats_06.xml data/raw/ats_12.xml --semiannual

CLI Flags:
    FILE...             ATS XML files
    --semiannual        Label June/December annexes as semesters
    --group-by, -g      all (default) or semester
    --output-dir, -o    Output directory (default: data/processed)
    --no-save           Don't save JSON output
    --quiet             Suppress report output
    --workers, -w       Parsing thread-pool size (default: config)
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
from sri_fiscal.consolidation.ats_merge import GROUP_ALL, GROUP_BY_CHOICES  # noqa: E402
from sri_fiscal.consolidation.batch import AtsBatchResult, process_ats_batch  # noqa: E402
from sri_fiscal.extractor.results import DocumentFailure, FailureReason  # noqa: E402
from sri_fiscal.transformer.formatter import format_ats_report  # noqa: E402
from sri_fiscal.writer.json_writer import save_ats_consolidation  # noqa: E402

logger = setup_logging(__name__)


def read_documents(paths: list[Path]) -> tuple[list[tuple[str, bytes]], list[DocumentFailure]]:
    """Read ATS files as raw bytes; unreadable files become ``READ_ERROR`` failures."""
    documents = []
    failures = []
    for path in paths:
        try:
            documents.append((path.name, path.read_bytes()))
        except OSError as e:
            logger.error("Could not read %s: %s", path, e)
            failures.append(DocumentFailure(path.name, FailureReason.READ_ERROR, str(e)))
    return documents, failures


def process_ats(
    paths: list[Path],
    semiannual: bool = False,
    group_by: str = GROUP_ALL,
    save: bool = True,
    verbose: bool = True,
    output_dir: Path | None = None,
    max_workers: int | None = None,
) -> AtsBatchResult:
    """Parse, merge, save and print a set of ATS annexes.

    Returns
    -------
    AtsBatchResult
        Per-month summaries, merged summaries, failures and status.
    """
    documents, unreadable = read_documents(paths)
    result = process_ats_batch(
        documents,
        semiannual=semiannual,
        max_workers=max_workers,
        group_by=group_by,
        unreadable=unreadable,
    )

    for failure in result.failures:
        logger.warning("Skipped %s", failure)

    if not result.ok:
        logger.error("ATS: no usable annexes (%s)", result.status.value)
        return result

    if save:
        save_ats_consolidation(
            result.consolidated,
            result.summaries,
            group_by,
            output_dir=output_dir,
            failures=result.failures,
        )

    if verbose:
        for summary in result.consolidated.values():
            print(format_ats_report(summary))  # noqa: T201

    return result


# =============================================================================
# CLI
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Parse CLI flags and consolidate the given ATS annexes.

    Returns
    -------
    int
        ``0`` when at least one annex was usable; ``1`` otherwise.
    """
    parser = argparse.ArgumentParser(
        description="Consolidate ATS (Anexo Transaccional Simplificado) XML annexes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sri_fiscal.main_ats data/raw/ats_*.xml                     # Whole year
  python -m sri_fiscal.main_ats data/raw/ats_*.xml --group-by semester # S1 / S2
        """,
    )
    parser.add_argument("files", nargs="+", type=Path, metavar="FILE", help="ATS XML files")
    parser.add_argument("--semiannual", action="store_true", help="Label June/December annexes as semesters")
    parser.add_argument("--group-by", "-g", choices=GROUP_BY_CHOICES, default=GROUP_ALL, help="Consolidation groups")
    parser.add_argument("--output-dir", "-o", type=Path, default=None, help="Output directory")
    parser.add_argument("--no-save", action="store_true", help="Don't save to JSON")
    parser.add_argument("--quiet", action="store_true", help="Don't print report")
    parser.add_argument("--workers", "-w", type=int, default=None, help="Parsing threads (default: config)")

    args = parser.parse_args(argv)

    result = process_ats(
        args.files,
        semiannual=args.semiannual,
        group_by=args.group_by,
        save=not args.no_save,
        verbose=not args.quiet,
        output_dir=args.output_dir,
        max_workers=args.workers,
    )
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
