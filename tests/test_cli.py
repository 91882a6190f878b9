"""Tests for the single-document and batch CLI commands."""

import csv
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from PIL import Image

from conftest import FakeOCREngine
from id_ocr.cli import (
    _find_documents,
    _print_summary,
    _write_csv,
    main,
    mime_type_for,
    process_folder,
    validate_file,
)
from id_ocr.ocr.engine import OCREnginePool
from id_ocr.pipeline import ValidationPipeline
from id_ocr.utils.config import AppConfig

SCENARIO_A_TEXT = "NOMBRE: JUAN\nAPELLIDOS: GARCIA LOPEZ\n12345678Z"


def _make_card_image(path: Path) -> None:
    """Create a blank card-shaped PNG at the given path."""
    img = Image.fromarray(np.full((300, 480, 3), 255, dtype=np.uint8))
    img.save(path, format="PNG")


def _fake_pipeline_factory(text: str = SCENARIO_A_TEXT):
    def factory(config: AppConfig | None = None) -> ValidationPipeline:
        pool = OCREnginePool([FakeOCREngine(text=text)])
        return ValidationPipeline(config, engine_pool=pool)

    return factory


class TestFindDocuments:
    """Tests for document discovery."""

    def test_find_png_files(self, tmp_path: Path) -> None:
        _make_card_image(tmp_path / "a.png")
        _make_card_image(tmp_path / "b.png")
        assert [p.name for p in _find_documents(tmp_path)] == ["a.png", "b.png"]

    def test_find_mixed_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "a.jpg").touch()
        (tmp_path / "b.tiff").touch()
        (tmp_path / "notes.txt").touch()
        (tmp_path / "scan.pdf").touch()
        assert [p.name for p in _find_documents(tmp_path)] == ["a.jpg", "b.tiff"]

    def test_find_uppercase_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "DNI.PNG").touch()
        assert len(_find_documents(tmp_path)) == 1

    def test_find_no_documents(self, tmp_path: Path) -> None:
        assert _find_documents(tmp_path) == []

    def test_mime_type_for(self) -> None:
        assert mime_type_for(Path("dni.JPG")) == "image/jpeg"
        assert mime_type_for(Path("scan.tif")) == "image/tiff"
        assert mime_type_for(Path("upload.bin")) == "application/octet-stream"


class TestCSVExport:
    """Tests for CSV writing and the summary."""

    def test_write_csv_content(self, tmp_path: Path) -> None:
        output = tmp_path / "out.csv"
        rows = [
            {
                "filename": "a.png",
                "success": True,
                "document_type": "DNI_FRONT",
                "first_name": "JUAN",
                "document_number": "12345678Z",
                "checksum_valid": True,
            },
            {"filename": "b.png", "success": False, "error": "bad"},
        ]
        _write_csv(rows, output)

        with open(output, newline="") as f:
            reader = csv.DictReader(f)
            header = reader.fieldnames
            records = list(reader)

        assert header[:3] == ["filename", "success", "document_type"]
        assert header.index("document_number") < header.index("first_name")
        assert header[-1] == "checksum_valid"
        assert records[0]["document_number"] == "12345678Z"
        assert records[1]["error"] == "bad"

    def test_write_csv_empty_results(self, tmp_path: Path) -> None:
        output = tmp_path / "out.csv"
        _write_csv([], output)
        assert not output.exists()

    def test_write_csv_creates_parent_dirs(self, tmp_path: Path) -> None:
        output = tmp_path / "nested" / "dir" / "out.csv"
        _write_csv([{"filename": "a.png"}], output)
        assert output.exists()

    def test_print_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        summary = {"total": 3, "accepted": 1, "rejected": 1, "failed": 1}
        _print_summary(summary, Path("results.csv"))
        captured = capsys.readouterr().out
        assert "Accepted: 1" in captured
        assert "Failed:   1" in captured
        assert "results.csv" in captured


class TestValidateFile:
    """Tests for single-file validation."""

    def test_accepted(self, tmp_path: Path) -> None:
        path = tmp_path / "dni.png"
        _make_card_image(path)
        pipeline = _fake_pipeline_factory()(AppConfig())

        response = validate_file(pipeline, path)

        assert response.success is True
        assert response.data.document_number == "12345678Z"

    def test_corrupt_file_becomes_failed_response(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        pipeline = _fake_pipeline_factory()(AppConfig())

        response = validate_file(pipeline, path)

        assert response.success is False
        assert response.error_kind == "image_decode"
        assert response.data is None


class TestProcessFolder:
    """Tests for batch validation."""

    @patch("id_ocr.cli.ValidationPipeline", side_effect=_fake_pipeline_factory())
    def test_process_folder(self, mock_pipeline: MagicMock, tmp_path: Path) -> None:
        _make_card_image(tmp_path / "good.png")
        (tmp_path / "broken.png").write_bytes(b"not an image")
        output = tmp_path / "results.csv"

        summary = process_folder(tmp_path, output)

        assert summary == {"total": 2, "accepted": 1, "rejected": 0, "failed": 1}
        with open(output, newline="") as f:
            rows = {row["filename"]: row for row in csv.DictReader(f)}
        assert rows["good.png"]["success"] == "True"
        assert rows["good.png"]["document_number"] == "12345678Z"
        assert rows["broken.png"]["success"] == "False"

    @patch("id_ocr.cli.ValidationPipeline", side_effect=_fake_pipeline_factory(""))
    def test_low_confidence_counts_as_rejected(
        self, mock_pipeline: MagicMock, tmp_path: Path
    ) -> None:
        _make_card_image(tmp_path / "blank.png")
        summary = process_folder(tmp_path, tmp_path / "results.csv")
        assert summary["rejected"] == 1

    @patch("id_ocr.cli.ValidationPipeline", side_effect=_fake_pipeline_factory())
    def test_process_folder_empty(
        self, mock_pipeline: MagicMock, tmp_path: Path
    ) -> None:
        summary = process_folder(tmp_path, tmp_path / "results.csv")
        assert summary["total"] == 0

    @patch("id_ocr.cli.ValidationPipeline", side_effect=_fake_pipeline_factory())
    def test_process_folder_verbose(
        self,
        mock_pipeline: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _make_card_image(tmp_path / "good.png")
        process_folder(tmp_path, tmp_path / "results.csv", verbose=True)
        assert "Processing [1/1]: good.png" in capsys.readouterr().out


@patch("id_ocr.cli.setup_logging")
class TestMain:
    """Tests for argument parsing and dispatch."""

    def test_no_command_shows_help(
        self, mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0

    def test_batch_nonexistent_directory(
        self, mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", "/nonexistent/dir"])
        assert exc_info.value.code == 1
        assert "is not a directory" in capsys.readouterr().err

    def test_extract_nonexistent_file(
        self, mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["extract", "/nonexistent/dni.png"])
        assert exc_info.value.code == 1

    def test_unknown_type_rejected(self, mock_logging: MagicMock) -> None:
        with pytest.raises(SystemExit):
            main(["extract", "dni.png", "-t", "visa"])

    @patch("id_ocr.cli.ValidationPipeline", side_effect=_fake_pipeline_factory())
    def test_extract_writes_json(
        self, mock_pipeline: MagicMock, mock_logging: MagicMock, tmp_path: Path
    ) -> None:
        image = tmp_path / "dni.png"
        _make_card_image(image)
        output = tmp_path / "out" / "dni.json"

        main(
            ["extract", str(image), "-t", "dni", "--side", "front", "-o", str(output)]
        )

        data = json.loads(output.read_text())
        assert data["success"] is True
        assert data["document_type"] == "DNI_FRONT"
        assert data["data"]["last_names"] == "GARCIA LOPEZ"

    @patch("id_ocr.cli.ValidationPipeline", side_effect=_fake_pipeline_factory())
    def test_extract_prints_json(
        self,
        mock_pipeline: MagicMock,
        mock_logging: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image = tmp_path / "dni.png"
        _make_card_image(image)

        main(["extract", str(image)])

        assert '"document_number": "12345678Z"' in capsys.readouterr().out

    @patch("id_ocr.cli.process_folder")
    def test_batch_command(
        self, mock_pf: MagicMock, mock_logging: MagicMock, tmp_path: Path
    ) -> None:
        output = tmp_path / "out.csv"
        main(["batch", str(tmp_path), "-o", str(output), "-t", "nie", "-v"])
        mock_pf.assert_called_once_with(tmp_path, output, "nie", True, None)
