"""Tests for merging ATS summaries across periods."""

from decimal import Decimal

import pytest

from sri_fiscal.consolidation.ats_merge import consolidate_ats, merge_ats_summaries, sort_summaries
from sri_fiscal.extractor.ats_parser import parse_ats_document


@pytest.fixture
def summary_for(make_ats, document_types, retention_codes):
    """Build an AtsPeriodSummary for a month from purchase dicts."""

    def _summary(mes: str, compras: list[dict], anio: str = "2024"):
        return parse_ats_document(
            make_ats(mes=mes, anio=anio, compras=compras),
            f"ats_{mes}.xml",
            document_types=document_types,
            retention_codes=retention_codes,
        )

    return _summary


@pytest.fixture
def quarter(summary_for):
    """January, February and March summaries with overlapping categories."""
    return [
        summary_for(
            "01",
            [
                {"tipoComprobante": "01", "baseImpGrav": "500.00", "montoIva": "75.00", "valRetBien10": "7.50"},
                {"tipoComprobante": "04", "baseImpGrav": "100.00", "montoIva": "15.00"},
            ],
        ),
        summary_for(
            "02",
            [
                {
                    "tipoComprobante": "01",
                    "baseImpGrav": "200.00",
                    "montoIva": "30.00",
                    "air": [{"codRetAir": "312", "baseImpAir": "200.00", "valRetAir": "3.50"}],
                },
            ],
        ),
        summary_for(
            "03",
            [
                {"tipoComprobante": "03", "baseImponible": "80.00", "valRetServ100": "4.00"},
            ],
        ),
    ]


class TestMergeAtsSummaries:
    """Tests for merge_ats_summaries."""

    def test_tables_unioned_and_summed(self, quarter) -> None:
        merged = merge_ats_summaries(quarter)

        assert [p.code for p in merged.purchases] == ["01", "03", "04"]
        assert merged.purchase("01").count == 2
        assert merged.purchase("01").base_standard_rate == Decimal("700.00")
        assert merged.income_withholding("312").withheld == Decimal("3.50")
        assert [v.bucket for v in merged.vat_withholdings] == ["10", "100"]

    def test_credit_note_reversed_once(self, quarter) -> None:
        merged = merge_ats_summaries(quarter)

        assert merged.purchase("04").base_standard_rate == Decimal("100.00")
        assert merged.totals.purchases.base_standard_rate == Decimal("600.00")
        assert merged.totals.purchases.vat_amount == Decimal("90.00")

    def test_merged_totals_equal_sum_of_period_totals(self, quarter) -> None:
        merged = merge_ats_summaries(quarter).totals

        assert merged.purchases.base_total == sum((s.totals.purchases.base_total for s in quarter), Decimal(0))
        assert merged.purchases.count == sum(s.totals.purchases.count for s in quarter)
        assert merged.income_withheld == sum((s.totals.income_withheld for s in quarter), Decimal(0))
        assert merged.vat_withheld == sum((s.totals.vat_withheld for s in quarter), Decimal(0))

    def test_inputs_not_modified(self, quarter) -> None:
        merge_ats_summaries(quarter)

        assert quarter[0].purchase("01").count == 1
        assert quarter[0].purchase("01").base_standard_rate == Decimal("500.00")

    def test_metadata_and_label_from_earliest(self, quarter) -> None:
        merged = merge_ats_summaries(list(reversed(quarter)))

        assert merged.month == "01"
        assert merged.year == "2024"
        assert merged.period_label == "CONSOLIDADO 3 PERIODO(S) 2024"
        assert merged.source_name == "ats_01.xml, ats_02.xml, ats_03.xml"

    def test_explicit_label(self, quarter) -> None:
        assert merge_ats_summaries(quarter, label="PRIMER TRIMESTRE").period_label == "PRIMER TRIMESTRE"

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="No hay datos ATS"):
            merge_ats_summaries([])


class TestConsolidateAts:
    """Tests for consolidate_ats."""

    def test_all_grouping(self, quarter) -> None:
        result = consolidate_ats(quarter)

        assert list(result) == ["TOTAL"]
        assert result["TOTAL"].purchase("01").count == 2

    def test_semester_grouping(self, summary_for) -> None:
        summaries = [
            summary_for("09", [{"tipoComprobante": "01", "baseImpGrav": "10.00"}]),
            summary_for("03", [{"tipoComprobante": "01", "baseImpGrav": "20.00"}]),
            summary_for("04", [{"tipoComprobante": "01", "baseImpGrav": "30.00"}]),
        ]

        result = consolidate_ats(summaries, group_by="semester")

        assert list(result) == ["S1", "S2"]
        assert result["S1"].period_label == "1er SEMESTRE 2024"
        assert result["S2"].period_label == "2do SEMESTRE 2024"
        assert result["S1"].totals.purchases.base_standard_rate == Decimal("50.00")
        assert result["S2"].totals.purchases.base_standard_rate == Decimal("10.00")

    def test_semesters_of_different_years_kept_apart(self, summary_for) -> None:
        summaries = [
            summary_for("03", [{"tipoComprobante": "01", "baseImpGrav": "20.00"}], anio="2024"),
            summary_for("02", [{"tipoComprobante": "01", "baseImpGrav": "5.00"}], anio="2023"),
            summary_for("11", [{"tipoComprobante": "01", "baseImpGrav": "7.00"}], anio="2023"),
        ]

        result = consolidate_ats(summaries, group_by="semester")

        assert list(result) == ["2023-S1", "2023-S2", "2024-S1"]
        assert result["2023-S1"].period_label == "1er SEMESTRE 2023"
        assert result["2024-S1"].period_label == "1er SEMESTRE 2024"
        assert result["2023-S1"].totals.purchases.base_standard_rate == Decimal("5.00")
        assert result["2024-S1"].totals.purchases.base_standard_rate == Decimal("20.00")

    def test_unknown_grouping(self, quarter) -> None:
        with pytest.raises(ValueError, match="Unknown grouping"):
            consolidate_ats(quarter, group_by="quarter")

    def test_empty_input(self) -> None:
        assert consolidate_ats([]) == {}


class TestSortSummaries:
    def test_unknown_month_last(self, summary_for) -> None:
        summaries = [summary_for("00", []), summary_for("12", []), summary_for("02", [])]

        assert [s.month for s in sort_summaries(summaries)] == ["02", "12", "00"]
