"""Tests for CellImageEmbedder."""

import zipfile

import pytest
from openpyxl import load_workbook
from openpyxl.drawing.spreadsheet_drawing import TwoCellAnchor

from report_engine.cell_embedder import CellImageEmbedder
from report_engine.document import ReportDocument


class TestCellImageEmbedder:
    """Test cases for CellImageEmbedder."""

    @pytest.fixture
    def embedder(self, settings):
        return CellImageEmbedder(settings)

    @pytest.fixture
    def document(self):
        document = ReportDocument()
        yield document
        document.close()

    @pytest.fixture
    def sheet(self, document):
        return document.create_sheet("Fotoğraflar")

    def test_embed_returns_picture(self, embedder, document, sheet, jpeg_bytes):
        picture = embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)

        assert picture is not None
        assert picture.sheet_title == "Fotoğraflar"
        assert picture.size_bytes == len(jpeg_bytes)
        assert picture.anchor.cell == "G7"
        assert len(sheet._images) == 1

    def test_anchor_spans_exactly_one_cell(self, embedder, document, sheet, jpeg_bytes):
        picture = embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)
        anchor = picture.anchor

        assert (anchor.start_column, anchor.start_row) == (6, 6)
        assert anchor.end_column == anchor.start_column + 1
        assert anchor.end_row == anchor.start_row + 1

    def test_drawing_anchor_is_inset(self, embedder, document, sheet, jpeg_bytes):
        embedder.embed(document, sheet, jpeg_bytes, row=3, column=2)
        anchor = sheet._images[0].anchor

        assert isinstance(anchor, TwoCellAnchor)
        assert anchor.editAs == "twoCell"
        assert (anchor._from.col, anchor._from.row) == (1, 2)
        assert (anchor.to.col, anchor.to.row) == (2, 3)
        assert anchor._from.colOff == 50000
        assert anchor._from.rowOff == 50000
        assert anchor.to.colOff == -50000
        assert anchor.to.rowOff == -50000

    def test_low_row_is_raised(self, embedder, document, sheet, jpeg_bytes):
        sheet.row_dimensions[7].height = 20

        embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)

        assert sheet.row_dimensions[7].height == 150

    def test_tall_row_is_never_decreased(self, embedder, document, sheet, jpeg_bytes):
        sheet.row_dimensions[7].height = 220

        embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)

        assert sheet.row_dimensions[7].height == 220

    def test_explicit_row_height(self, embedder, document, sheet, jpeg_bytes):
        embedder.embed(document, sheet, jpeg_bytes, row=4, column=2, row_height=60)
        assert sheet.row_dimensions[4].height == 60

    def test_column_widened(self, embedder, document, sheet, jpeg_bytes):
        sheet.column_dimensions["G"].width = 15

        embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)

        assert sheet.column_dimensions["G"].width == 50

    def test_wide_column_is_never_narrowed(self, embedder, document, sheet, jpeg_bytes):
        sheet.column_dimensions["G"].width = 70

        embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)

        assert sheet.column_dimensions["G"].width == 70

    def test_same_bytes_stored_once(self, embedder, document, sheet, jpeg_bytes):
        first = embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)
        other_sheet = document.create_sheet("Detay")
        second = embedder.embed(document, other_sheet, jpeg_bytes, row=8, column=7)

        assert first.image_key == second.image_key
        assert document.image_count == 1
        assert len(sheet._images) == 1
        assert len(other_sheet._images) == 1

    def test_saved_file_has_media_part_per_placement(
        self, embedder, document, sheet, jpeg_bytes, tmp_path
    ):
        embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)
        embedder.embed(document, sheet, jpeg_bytes, row=8, column=7)
        assert document.image_count == 1
        target = document.save(tmp_path / "media.xlsx")

        with zipfile.ZipFile(target) as archive:
            media = [name for name in archive.namelist() if name.startswith("xl/media/")]

        assert len(media) == 2

    def test_invalid_bytes_return_none(self, embedder, document, sheet):
        picture = embedder.embed(document, sheet, b"not a jpeg", row=7, column=7)

        assert picture is None
        assert sheet._images == []

    def test_embedded_pictures_survive_save(self, embedder, document, sheet, jpeg_bytes, tmp_path):
        embedder.embed(document, sheet, jpeg_bytes, row=7, column=7)
        embedder.embed(document, sheet, jpeg_bytes, row=8, column=7)
        target = document.save(tmp_path / "pictures.xlsx")

        reloaded = load_workbook(target)["Fotoğraflar"]

        assert len(reloaded._images) == 2
        rows = sorted(image.anchor._from.row for image in reloaded._images)
        assert rows == [6, 7]
        assert reloaded.row_dimensions[7].height == 150
