"""Transformer module for presentation data.

Submodules
----------
formatter
    Maps consolidated values onto form rows, builds annual pandas frames and
    renders plain-text reports. Reads totals, never computes them.
"""

from sri_fiscal.transformer.formatter import (
    build_annual_frame,
    build_ats_annual_frame,
    format_annual_report,
    format_ats_report,
    map_to_structure,
)

__all__ = [
    "build_annual_frame",
    "build_ats_annual_frame",
    "format_annual_report",
    "format_ats_report",
    "map_to_structure",
]
