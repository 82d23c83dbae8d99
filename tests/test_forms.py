"""Tests for declaration form schemas and config integrity."""

import pytest

from sri_fiscal.config import CONFIG_DIR, get_ats_catalog, get_forms_registry
from sri_fiscal.forms.schema import (
    FormRow,
    FormSection,
    FormStructure,
    available_forms,
    find_conflicting_codes,
    iter_field_codes,
    load_form_structure,
)


class TestRegistry:
    """Tests for the form registry in config.json."""

    def test_registered_forms(self) -> None:
        assert available_forms() == ["103", "104"]

    def test_registered_files_exist(self) -> None:
        for name, entry in get_forms_registry().items():
            assert (CONFIG_DIR / entry["file"]).exists(), f"Form {name} schema missing"

    def test_registry_slots_match_schema(self) -> None:
        for name, entry in get_forms_registry().items():
            assert list(load_form_structure(name).slots) == entry["slots"]

    def test_unknown_form(self) -> None:
        with pytest.raises(KeyError, match="Unknown form"):
            load_form_structure("101")


class TestForm104:
    """Tests for the VAT return schema."""

    @pytest.fixture
    def form(self) -> FormStructure:
        return load_form_structure("104")

    def test_slots(self, form: FormStructure) -> None:
        assert form.slots == ("valor_bruto", "valor_neto", "impuesto_generado")

    def test_no_conflicting_codes(self, form: FormStructure) -> None:
        assert find_conflicting_codes(form) == {}

    def test_sales_row_codes(self, form: FormStructure) -> None:
        codes = {code: slot for code, _section, _row, slot in iter_field_codes(form)}

        assert codes["401"] == "valor_bruto"
        assert codes["411"] == "valor_neto"
        assert codes["421"] == "impuesto_generado"

    def test_every_row_has_one_entry_per_slot(self, form: FormStructure) -> None:
        for section in form.sections:
            for row in section.rows:
                assert len(row.fields) == len(form.slots)

    def test_no_relevance_rule(self, form: FormStructure) -> None:
        assert form.required_prefixes == ()


class TestForm103:
    """Tests for the withholding return schema."""

    @pytest.fixture
    def form(self) -> FormStructure:
        return load_form_structure("103")

    def test_slots(self, form: FormStructure) -> None:
        assert form.slots == ("base_imponible", "valor_retenido")

    def test_no_conflicting_codes(self, form: FormStructure) -> None:
        assert find_conflicting_codes(form) == {}

    def test_relevance_rule(self, form: FormStructure) -> None:
        assert form.required_prefixes == ("3", "4", "5")
        assert form.min_fields == 5

    def test_total_row(self, form: FormStructure) -> None:
        totals = [row for section in form.sections for row in section.rows if row.is_total]

        assert any("399" in row.codes for row in totals)


class TestFormStructure:
    """Tests for schema helpers on synthetic forms."""

    @pytest.fixture
    def form(self) -> FormStructure:
        return FormStructure(
            form="999",
            title="Prueba",
            slots=("base", "valor"),
            sections=(
                FormSection(
                    "Sección A",
                    "100",
                    (
                        FormRow("Encabezado", (None, None), kind="group"),
                        FormRow("Fila 1", ("101", "151")),
                        FormRow("Fila 2", ("102", "101")),
                    ),
                ),
            ),
        )

    def test_conflicts_reported(self, form: FormStructure) -> None:
        conflicts = find_conflicting_codes(form)

        assert list(conflicts) == ["101"]
        assert len(conflicts["101"]) == 2

    def test_slot_index(self, form: FormStructure) -> None:
        assert form.slot_index("valor") == 1
        with pytest.raises(KeyError):
            form.slot_index("impuesto")

    def test_row_helpers(self, form: FormStructure) -> None:
        heading, first, _ = form.sections[0].rows

        assert heading.is_heading
        assert heading.codes == []
        assert first.codes == ["101", "151"]


class TestAtsCatalogs:
    def test_credit_note_described(self) -> None:
        assert "04" in get_ats_catalog("document_types")

    def test_retention_catalog_not_empty(self) -> None:
        assert get_ats_catalog("retention_codes")
