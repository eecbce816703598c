"""Places compressed photos inside a single worksheet cell."""

import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from openpyxl.drawing.image import Image as ExcelImage
from openpyxl.drawing.spreadsheet_drawing import AnchorMarker, TwoCellAnchor
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .config_manager import default_report_settings
from .document import ReportDocument
from .image_pipeline import CompressedImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anchor:
    """Zero-based cell corners of a picture, with the EMU inset used on both."""

    start_column: int
    start_row: int
    end_column: int
    end_row: int
    inset_emu: int

    @property
    def cell(self) -> str:
        return f"{get_column_letter(self.start_column + 1)}{self.start_row + 1}"


@dataclass(frozen=True)
class Picture:
    """A picture placed on a sheet."""

    sheet_title: str
    image_key: str
    anchor: Anchor
    size_bytes: int


class CellImageEmbedder:
    """Anchors an image to exactly one cell and sizes the cell to show it."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None) -> None:
        settings = settings or default_report_settings()
        layout = settings.get("layout", {})
        self.inset = layout.get("image_inset_emu", 50000)
        self.min_row_height = layout.get("photo_row_height", 150)
        self.min_column_width = layout.get("image_column_width", 50)

    def embed(
        self,
        document: ReportDocument,
        sheet: Worksheet,
        compressed: Union[bytes, CompressedImage],
        row: int,
        column: int,
        row_height: Optional[float] = None,
    ) -> Optional[Picture]:
        """Embed ``compressed`` JPEG bytes in the cell at (``row``, ``column``).

        Rows and columns are 1-based. The row is raised to ``row_height``
        (default: the configured photo row height) and the column widened to
        the configured image width; neither is ever reduced.

        Returns the placed ``Picture``, or ``None`` if the image could not be
        added. Failures are logged, not raised.
        """
        data = compressed.data if isinstance(compressed, CompressedImage) else compressed
        cell_ref = f"{get_column_letter(column)}{row}"
        try:
            image_key = document.register_image(data)
            # Each placement needs its own stream; openpyxl closes it when saving
            excel_img = ExcelImage(io.BytesIO(document.image_bytes(image_key)))

            anchor = Anchor(
                start_column=column - 1,
                start_row=row - 1,
                end_column=column,
                end_row=row,
                inset_emu=self.inset,
            )
            excel_img.anchor = self._two_cell_anchor(anchor)
            sheet.add_image(excel_img)

            self._adjust_row_height(sheet, row, row_height or self.min_row_height)
            self._adjust_column_width(sheet, column, self.min_column_width)

        except Exception as e:
            logger.error(f"Image insert failed at {sheet.title}!{cell_ref}: {e}")
            return None

        logger.debug(f"Inserted image at {sheet.title}!{cell_ref} ({len(data)} bytes)")
        return Picture(
            sheet_title=sheet.title,
            image_key=image_key,
            anchor=anchor,
            size_bytes=len(data),
        )

    @staticmethod
    def _two_cell_anchor(anchor: Anchor) -> TwoCellAnchor:
        start = AnchorMarker(
            col=anchor.start_column,
            colOff=anchor.inset_emu,
            row=anchor.start_row,
            rowOff=anchor.inset_emu,
        )
        end = AnchorMarker(
            col=anchor.end_column,
            colOff=-anchor.inset_emu,
            row=anchor.end_row,
            rowOff=-anchor.inset_emu,
        )
        return TwoCellAnchor(editAs="twoCell", _from=start, to=end)

    def _adjust_row_height(self, sheet: Worksheet, row: int, required_height: float) -> None:
        """Only increase the row height if necessary."""
        current_height = sheet.row_dimensions[row].height or 15
        if required_height > current_height:
            sheet.row_dimensions[row].height = required_height
            logger.debug(
                f"Adjusted row {row} height from {current_height:.1f} to {required_height:.1f} points"
            )

    def _adjust_column_width(self, sheet: Worksheet, column: int, required_width: float) -> None:
        """Only increase the column width if necessary."""
        col_letter = get_column_letter(column)
        current_width = sheet.column_dimensions[col_letter].width or 8.43
        if required_width > current_width:
            sheet.column_dimensions[col_letter].width = required_width
            logger.debug(
                f"Adjusted column {col_letter} width from {current_width:.1f} to {required_width:.1f} characters"
            )
