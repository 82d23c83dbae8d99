"""Configuration management for sri-fiscal.

This module centralizes file-system paths, environment variables, and the
JSON configuration loaders used by the extraction and consolidation engine.

Configuration files
-------------------
* ``config.json``: shared project config (worker pool size, output settings,
  form registry)
* ``forms/form104.json`` and ``forms/form103.json``: read-only declaration
  schemas (sections, rows, field codes)
* ``ats/document_types.json`` and ``ats/retention_codes.json``: catalogs used
  to label ATS categories

Environment variables
---------------------
``SRI_FISCAL_CONFIG_DIR`` overrides the configuration directory; ``DATA_DIR``
and ``LOGS_DIR`` override the output and log directories. Output directories
are created eagerly on import so downstream callers can rely on their
existence.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = Path(os.getenv("SRI_FISCAL_CONFIG_DIR", PROJECT_ROOT / "config"))
DATA_DIR = Path(os.getenv("DATA_DIR", PROJECT_ROOT / "data"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", PROJECT_ROOT / "logs"))

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)

DEFAULT_MAX_WORKERS = 4


def _load_json(config_path: Path, label: str) -> dict[str, Any]:
    """Read a JSON config file, raising ``FileNotFoundError`` when absent."""
    if not config_path.exists():
        msg = f"{label} not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open(encoding="utf-8") as f:
        return cast("dict[str, Any]", json.load(f))


def get_config() -> dict[str, Any]:
    """Load the primary project configuration.

    Returns
    -------
    dict[str, Any]
        Parsed contents of ``config/config.json`` including extraction
        settings and the form registry.

    Raises
    ------
    FileNotFoundError
        If ``config/config.json`` is missing.
    json.JSONDecodeError
        If the file exists but is not valid JSON.
    """
    return _load_json(CONFIG_DIR / "config.json", "Configuration file")


def get_extraction_settings(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the ``extraction`` block of the project configuration.

    Parameters
    ----------
    config : dict[str, Any] | None, optional
        Preloaded config; when ``None`` it is fetched via :func:`get_config`.

    Returns
    -------
    dict[str, Any]
        Extraction settings with ``max_workers`` always present.
    """
    if config is None:
        config = get_config()

    settings = dict(config.get("extraction", {}))
    settings.setdefault("max_workers", DEFAULT_MAX_WORKERS)
    return settings


def get_max_workers(config: dict[str, Any] | None = None) -> int:
    """Return the thread-pool size used for per-document extraction."""
    workers = int(get_extraction_settings(config)["max_workers"])
    return max(workers, 1)


def get_output_settings(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the ``output`` block with file-name patterns filled in.

    Parameters
    ----------
    config : dict[str, Any] | None, optional
        Preloaded config; when ``None`` it is fetched via :func:`get_config`.

    Returns
    -------
    dict[str, Any]
        ``subdirectory`` under ``DATA_DIR`` plus the ``*_pattern`` entries
        used to name output files.
    """
    if config is None:
        config = get_config()

    settings = dict(config.get("output", {}))
    settings.setdefault("subdirectory", "processed")
    settings.setdefault("declarations_file_pattern", "declaraciones_{form}_{year}.json")
    settings.setdefault("annual_csv_pattern", "anual_{form}_{slot}_{year}.csv")
    settings.setdefault("ats_file_pattern", "ats_{group}_{year}.json")
    return settings


def get_forms_registry(config: dict[str, Any] | None = None) -> dict[str, dict[str, Any]]:
    """Return the registered declaration forms keyed by form number.

    Parameters
    ----------
    config : dict[str, Any] | None, optional
        Preloaded config; when ``None`` it is fetched via :func:`get_config`.

    Returns
    -------
    dict[str, dict[str, Any]]
        Mapping such as ``{"104": {"file": "forms/form104.json", ...}}``.
    """
    if config is None:
        config = get_config()
    return cast("dict[str, dict[str, Any]]", config.get("forms", {}))


def get_ats_catalog(name: str) -> dict[str, str]:
    """Load an ATS description catalog.

    Parameters
    ----------
    name : str
        Catalog name: ``"document_types"`` or ``"retention_codes"``.

    Returns
    -------
    dict[str, str]
        Category code mapped to its human-readable description.

    Raises
    ------
    FileNotFoundError
        If ``config/ats/<name>.json`` is missing.
    """
    catalog = _load_json(CONFIG_DIR / "ats" / f"{name}.json", "ATS catalog")
    return cast("dict[str, str]", catalog.get("codes", {}))


def setup_logging(name: str = "sri_fiscal") -> logging.Logger:
    """Configure a console+file logger if not already present.

    Parameters
    ----------
    name : str, optional
        Logger namespace; reused to avoid duplicate handlers.

    Returns
    -------
    logging.Logger
        Logger with INFO-level console handler and DEBUG-level dated file
        handler under ``LOGS_DIR``.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

        # File handler
        log_filename = f"{datetime.now(UTC).strftime('%Y-%m-%d')}_run.log"
        file_handler = logging.FileHandler(LOGS_DIR / log_filename, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger
