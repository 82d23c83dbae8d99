"""Tests for configuration loaders."""

from sri_fiscal.config import (
    DEFAULT_MAX_WORKERS,
    get_config,
    get_extraction_settings,
    get_max_workers,
    get_output_settings,
)


class TestExtractionSettings:
    def test_project_config_loads(self) -> None:
        config = get_config()

        assert "extraction" in config
        assert "forms" in config

    def test_default_workers(self) -> None:
        assert get_extraction_settings({})["max_workers"] == DEFAULT_MAX_WORKERS

    def test_workers_never_below_one(self) -> None:
        assert get_max_workers({"extraction": {"max_workers": 0}}) == 1
        assert get_max_workers({"extraction": {"max_workers": 8}}) == 8


class TestOutputSettings:
    def test_defaults_filled(self) -> None:
        settings = get_output_settings({"output": {"subdirectory": "salida"}})

        assert settings["subdirectory"] == "salida"
        assert settings["declarations_file_pattern"] == "declaraciones_{form}_{year}.json"
        assert settings["ats_file_pattern"] == "ats_{group}_{year}.json"
