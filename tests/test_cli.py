"""Tests for the command-line entry points."""

import json
from pathlib import Path

from sri_fiscal import main_ats, main_declarations
from sri_fiscal.consolidation.batch import BatchStatus
from sri_fiscal.extractor.results import FailureReason
from sri_fiscal.forms.schema import load_form_structure


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestDeclarationsCli:
    """Tests for main_declarations.main."""

    def test_consolidates_and_saves(self, make_declaration, tmp_path: Path, capsys) -> None:
        files = [
            _write(tmp_path, "enero.txt", make_declaration(period="ENERO 2024", fields={"401": "100,00"})),
            _write(tmp_path, "febrero.txt", make_declaration(period="FEBRERO 2024", fields={"401": "50,25"})),
        ]
        out_dir = tmp_path / "out"

        exit_code = main_declarations.main([*map(str, files), "--output-dir", str(out_dir), "--csv"])

        assert exit_code == 0
        assert (out_dir / "declaraciones_104_2024.json").exists()
        assert (out_dir / "anual_104_valor_neto_2024.csv").exists()
        assert "150.25" in capsys.readouterr().out

    def test_no_usable_data_exit_code(self, make_declaration, tmp_path: Path) -> None:
        path = _write(tmp_path, "sin_periodo.txt", make_declaration(period=None))
        out_dir = tmp_path / "out"

        exit_code = main_declarations.main([str(path), "-o", str(out_dir), "--quiet"])

        assert exit_code == 1
        assert not out_dir.exists()

    def test_missing_file_skipped(self, make_declaration, tmp_path: Path) -> None:
        path = _write(tmp_path, "marzo.txt", make_declaration(fields={"302": "10,00"}))

        exit_code = main_declarations.main(
            [str(tmp_path / "no_existe.txt"), str(path), "--form", "103", "--no-save", "--quiet"],
        )

        assert exit_code == 0

    def test_unreadable_files_are_reported(self, tmp_path: Path) -> None:
        """A corrupt PDF and a missing file are submitted documents, not an empty batch."""
        corrupt = tmp_path / "roto.pdf"
        corrupt.write_bytes(b"\x00\x01 esto no es un pdf \xff")

        result = main_declarations.process_declarations(
            [corrupt, tmp_path / "no_existe.txt"], load_form_structure("104"), save=False, verbose=False, max_workers=1
        )

        assert result.status is BatchStatus.NO_USABLE_DATA
        assert [f.document_id for f in result.failures] == ["roto.pdf", "no_existe.txt"]
        assert {f.reason for f in result.failures} == {FailureReason.READ_ERROR}

    def test_missing_file_recorded_in_saved_failures(self, make_declaration, tmp_path: Path) -> None:
        path = _write(tmp_path, "marzo.txt", make_declaration(fields={"401": "10,00"}))
        out_dir = tmp_path / "out"

        result = main_declarations.process_declarations(
            [tmp_path / "no_existe.txt", path],
            load_form_structure("104"),
            verbose=False,
            output_dir=out_dir,
            max_workers=1,
        )

        assert result.status is BatchStatus.PARTIAL
        saved = json.loads((out_dir / "declaraciones_104_2024.json").read_text(encoding="utf-8"))
        assert [(f["document_id"], f["reason"]) for f in saved["failures"]] == [("no_existe.txt", "read_error")]

        assert exit_code == 0

    def test_process_declarations_no_save(self, make_declaration, tmp_path: Path) -> None:
        path = _write(tmp_path, "marzo.txt", make_declaration(fields={"401": "1,00"}))

        result = main_declarations.process_declarations(
            [path], load_form_structure("104"), save=False, verbose=False, max_workers=1
        )

        assert result.ok
        assert list(tmp_path.iterdir()) == [path]


class TestAtsCli:
    """Tests for main_ats.main."""

    def test_semester_grouping(self, make_ats, tmp_path: Path, capsys) -> None:
        files = [
            _write(tmp_path, "ats_03.xml", make_ats(mes="03", compras=[{"tipoComprobante": "01", "baseImpGrav": "1"}])),
            _write(tmp_path, "ats_09.xml", make_ats(mes="09", compras=[{"tipoComprobante": "01", "baseImpGrav": "2"}])),
        ]
        out_dir = tmp_path / "out"

        exit_code = main_ats.main([*map(str, files), "-g", "semester", "-o", str(out_dir)])

        assert exit_code == 0
        assert (out_dir / "ats_semester_2024.json").exists()
        output = capsys.readouterr().out
        assert "1er SEMESTRE 2024" in output
        assert "2do SEMESTRE 2024" in output

    def test_malformed_only(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "roto.xml", "<iva>")

        assert main_ats.main([str(path), "--no-save", "--quiet"]) == 1

    def test_missing_only(self, tmp_path: Path) -> None:
        assert main_ats.main([str(tmp_path / "no_existe.xml"), "--no-save", "--quiet"]) == 1

    def test_missing_file_is_a_read_error(self, make_ats, tmp_path: Path) -> None:
        path = _write(tmp_path, "ats_03.xml", make_ats(mes="03"))

        result = main_ats.process_ats([tmp_path / "no_existe.xml", path], save=False, verbose=False, max_workers=1)

        assert result.status is BatchStatus.PARTIAL
        assert result.failures[0].document_id == "no_existe.xml"
        assert result.failures[0].reason is FailureReason.READ_ERROR
