"""sri-fiscal: extraction and consolidation of Ecuadorian SRI tax filings.

The package turns linearized declaration text (Formulario 104 and 103) and
ATS XML annexes into normalized per-period records, then merges them into
annual totals.

Architecture
------------
* ``utils``: Locale-ambiguous amount normalization and reporting-period keys.
* ``extractor``: Field/metadata scanning of declaration text, ATS parsing
  (lxml) and PDF linearization (pdfplumber).
* ``consolidation``: Period records, annual aggregation, ATS merging and the
  parallel batch entry points.
* ``forms``: Read-only Formulario 104/103 schemas from ``config/forms``.
* ``transformer``: Annual pandas frames and plain-text reports.
* ``writer``: JSON/CSV outputs.

Configuration
-------------
Paths default to the ``config/``, ``data/`` and ``logs/`` trees but respect
``SRI_FISCAL_CONFIG_DIR``, ``DATA_DIR`` and ``LOGS_DIR`` overrides (a ``.env``
file is honored).

Examples
--------
Consolidate twelve monthly VAT returns:

    >>> python -m sri_fiscal.main_declarations data/raw/104_*.pdf --form 104

Consolidate ATS annexes by semester:

    >>> python -m sri_fiscal.main_ats data/raw/ats_*.xml --group-by semester
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
