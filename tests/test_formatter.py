"""Tests for the presentation layer (structure mapping, annual frames, reports)."""

from decimal import Decimal

import pandas as pd
import pytest

from sri_fiscal.consolidation.aggregator import aggregate_records
from sri_fiscal.consolidation.records import PeriodRecord
from sri_fiscal.extractor.ats_parser import parse_ats_document
from sri_fiscal.forms.schema import FormRow, FormSection, FormStructure
from sri_fiscal.transformer.formatter import (
    TOTAL_COLUMN,
    UNMAPPED_DESCRIPTION,
    build_annual_frame,
    build_ats_annual_frame,
    format_annual_report,
    format_ats_report,
    map_to_structure,
)
from sri_fiscal.utils.periods import MONTH_NAMES, PeriodKey


@pytest.fixture
def form() -> FormStructure:
    """A two-row, two-slot form."""
    return FormStructure(
        form="104",
        title="Prueba",
        slots=("valor_bruto", "impuesto_generado"),
        sections=(
            FormSection(
                "Ventas",
                "400",
                (
                    FormRow("Ventas gravadas", ("401", "421")),
                    FormRow("Total ventas", ("409", "429"), kind="total"),
                ),
            ),
        ),
    )


@pytest.fixture
def consolidation():
    def record(month: int, fields: dict[str, str]) -> PeriodRecord:
        return PeriodRecord(
            period=PeriodKey.monthly(month, 2024),
            source_name=f"{month}.pdf",
            fields={code: Decimal(value) for code, value in fields.items()},
            taxpayer_id="1790012345001",
            legal_name="COMERCIAL ANDINA CIA LTDA",
        )

    return aggregate_records(
        [
            record(2, {"401": "200.00", "421": "30.00", "999": "1.00"}),
            record(1, {"401": "100.50", "421": "15.075"}),
        ]
    )


class TestMapToStructure:
    def test_rows_carry_slot_values(self, form: FormStructure) -> None:
        rows = map_to_structure({"401": Decimal("10.00")}, form)

        assert rows[0]["concepto"] == "Ventas gravadas"
        assert rows[0]["valor_bruto"] == {"code": "401", "valor": Decimal("10.00")}
        assert rows[0]["impuesto_generado"]["valor"] == Decimal("0")
        assert rows[1]["kind"] == "total"


class TestBuildAnnualFrame:
    """Tests for build_annual_frame."""

    def test_columns(self, consolidation, form: FormStructure) -> None:
        frame = build_annual_frame(consolidation, form, "valor_bruto")

        assert list(frame.columns) == ["Casillero", "Descripción", *MONTH_NAMES, TOTAL_COLUMN]

    def test_values_per_month_and_total(self, consolidation, form: FormStructure) -> None:
        frame = build_annual_frame(consolidation, form, "valor_bruto")
        row = frame.set_index("Casillero").loc["401"]

        assert row["ENERO"] == pytest.approx(100.50)
        assert row["FEBRERO"] == pytest.approx(200.00)
        assert row["MARZO"] == 0.0
        assert row[TOTAL_COLUMN] == pytest.approx(300.50)

    def test_default_slot_is_last(self, consolidation, form: FormStructure) -> None:
        frame = build_annual_frame(consolidation, form, include_unmapped=False)

        assert list(frame["Casillero"]) == ["421", "429"]
        assert frame.iloc[0][TOTAL_COLUMN] == pytest.approx(45.08)

    def test_unmapped_codes_appended(self, consolidation, form: FormStructure) -> None:
        frame = build_annual_frame(consolidation, form, "valor_bruto")
        last = frame.iloc[-1]

        assert last["Casillero"] == "999"
        assert last["Descripción"] == UNMAPPED_DESCRIPTION

    def test_unknown_slot(self, consolidation, form: FormStructure) -> None:
        with pytest.raises(KeyError):
            build_annual_frame(consolidation, form, "valor_neto")


class TestBuildAtsAnnualFrame:
    """Tests for build_ats_annual_frame."""

    @pytest.fixture
    def summaries(self, make_ats, document_types, retention_codes):
        def parse(mes, compras):
            return parse_ats_document(
                make_ats(mes=mes, compras=compras),
                f"{mes}.xml",
                document_types=document_types,
                retention_codes=retention_codes,
            )

        return [
            parse("01", [{"tipoComprobante": "01", "baseImpGrav": "500.00", "valRetBien10": "5.00"}]),
            parse("02", [{"tipoComprobante": "04", "baseImpGrav": "100.00", "valRetServ20": "2.00"}]),
        ]

    def test_purchases_negate_credit_notes(self, summaries) -> None:
        frame = build_ats_annual_frame(summaries, "purchases").set_index("Código")

        assert frame.loc["01", "ENE"] == pytest.approx(500.00)
        assert frame.loc["04", "FEB"] == pytest.approx(-100.00)
        assert frame.loc["04", "TOTAL"] == pytest.approx(-100.00)
        assert frame.loc["01", "DIC"] == 0.0

    def test_vat_buckets(self, summaries) -> None:
        frame = build_ats_annual_frame(summaries, "vat_withheld")

        assert list(frame["Código"]) == ["10", "20"]
        assert list(frame["Descripción"]) == ["Retención IVA 10%", "Retención IVA 20%"]

    def test_unknown_section(self, summaries) -> None:
        with pytest.raises(ValueError, match="Unknown ATS section"):
            build_ats_annual_frame(summaries, "ventas")

    def test_empty(self) -> None:
        frame = build_ats_annual_frame([], "income_withheld")

        assert isinstance(frame, pd.DataFrame)
        assert frame.empty


class TestReports:
    """Tests for the plain-text reports."""

    def test_annual_report(self, consolidation, form: FormStructure) -> None:
        report = format_annual_report(consolidation, form)

        assert "REPORTE ANUAL CONSOLIDADO 2024" in report
        assert "RUC: 1790012345001" in report
        assert "ENERO 2024, FEBRERO 2024" in report
        assert "300.50" in report
        assert "Ventas gravadas" in report
        assert report.index("401") < report.index("999")

    def test_empty_annual_report(self) -> None:
        assert "Sin valores extraídos" in format_annual_report(aggregate_records([]))

    def test_ats_report(self, make_ats) -> None:
        summary = parse_ats_document(
            make_ats(compras=[{"tipoComprobante": "01", "baseImpGrav": "123.45", "valRetBien10": "1.00"}]),
            "ats.xml",
            document_types={"01": "FACTURA"},
            retention_codes={},
        )

        report = format_ats_report(summary)

        assert "TALÓN ATS - MARZO 2024" in report
        assert "FACTURA" in report
        assert "123.45" in report
        assert "Retención IVA 10%" in report
