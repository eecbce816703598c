"""Report sheet layout: corporate banner, title, timestamp and table rows.

Every write returns the next free row so callers thread the position through
explicitly instead of assuming where content starts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .config_manager import default_report_settings
from .document import ReportDocument
from .style_registry import StyleKind

logger = logging.getLogger(__name__)


@dataclass
class ReportSheet:
    """A laid-out sheet and the first row available for content."""

    sheet: Worksheet
    next_row: int

    @property
    def title(self) -> str:
        return self.sheet.title


class SheetLayoutBuilder:
    """Creates report sheets and writes their fixed rows."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None) -> None:
        settings = settings or default_report_settings()
        layout = settings.get("layout", {})
        formats = settings.get("formats", {})

        self.company_banner = settings.get("company_banner", "")
        self.banner_columns = layout.get("banner_columns", 6)
        self.default_column_count = layout.get("default_column_count", 11)
        self.default_column_width = layout.get("default_column_width", 15)
        self.banner_row_height = layout.get("banner_row_height", 30)
        self.title_row_height = layout.get("title_row_height", 25)
        self.header_row_height = layout.get("header_row_height", 25)
        self.summary_row_height = layout.get("summary_row_height", 20)
        self.data_row_height = layout.get("data_row_height", 20)
        self.report_date_format = formats.get("report_date", "%Y-%m-%d %H:%M")

    def new_report_sheet(
        self,
        document: ReportDocument,
        sheet_name: str,
        title: str,
        generated_at: Optional[datetime] = None,
    ) -> ReportSheet:
        """Create a sheet with the corporate header block.

        Layout (1-based rows): banner merged over rows 1-2, title on row 3,
        report date on row 4, blank spacer on row 5. Content starts on row 6.

        Raises:
            InvalidNameError: for blank or unusable sheet names.
            DuplicateSheetError: if the name is already used in the document.
        """
        sheet = document.create_sheet(sheet_name)

        for column in range(1, self.default_column_count + 1):
            sheet.column_dimensions[get_column_letter(column)].width = self.default_column_width

        last_banner_column = get_column_letter(self.banner_columns)

        sheet.merge_cells(f"A1:{last_banner_column}2")
        banner = sheet.cell(row=1, column=1, value=self.company_banner)
        banner.style = document.styles.style(StyleKind.HEADER_BANNER)
        sheet.row_dimensions[1].height = self.banner_row_height

        sheet.merge_cells(f"A3:{last_banner_column}3")
        title_cell = sheet.cell(row=3, column=1, value=title)
        title_cell.style = document.styles.style(StyleKind.TITLE)
        sheet.row_dimensions[3].height = self.title_row_height

        generated_at = generated_at or datetime.now()
        sheet.cell(
            row=4,
            column=1,
            value=f"Report Date: {generated_at.strftime(self.report_date_format)}",
        )

        logger.debug(f"Created report sheet '{sheet_name}' with title '{title}'")
        # Row 5 stays empty as spacer
        return ReportSheet(sheet=sheet, next_row=6)

    def get_or_create_report_sheet(
        self,
        document: ReportDocument,
        sheet_name: str,
        title: str,
        generated_at: Optional[datetime] = None,
    ) -> ReportSheet:
        """Return an existing sheet positioned after its content, or lay out a new one."""
        existing = document.get_sheet(sheet_name)
        if existing is not None:
            return ReportSheet(sheet=existing, next_row=existing.max_row + 1)
        return self.new_report_sheet(document, sheet_name, title, generated_at)

    def set_column_widths(self, report_sheet: ReportSheet, widths: Sequence[float]) -> None:
        for index, width in enumerate(widths, 1):
            report_sheet.sheet.column_dimensions[get_column_letter(index)].width = width

    def write_summary_row(
        self, document: ReportDocument, report_sheet: ReportSheet, text: str
    ) -> int:
        """Write a one-cell summary line (e.g. operator names) at ``next_row``."""
        row = report_sheet.next_row
        cell = report_sheet.sheet.cell(row=row, column=1, value=text)
        cell.style = document.styles.style(StyleKind.DATA_CELL)
        report_sheet.sheet.row_dimensions[row].height = self.summary_row_height
        report_sheet.next_row = row + 1
        return report_sheet.next_row

    def write_column_headers(
        self, document: ReportDocument, report_sheet: ReportSheet, labels: Sequence[str]
    ) -> int:
        row = report_sheet.next_row
        style = document.styles.style(StyleKind.COLUMN_HEADER)
        for column, label in enumerate(labels, 1):
            cell = report_sheet.sheet.cell(row=row, column=column, value=label)
            cell.style = style
        report_sheet.sheet.row_dimensions[row].height = self.header_row_height
        report_sheet.next_row = row + 1
        return report_sheet.next_row

    def write_data_row(
        self,
        document: ReportDocument,
        report_sheet: ReportSheet,
        values: Sequence[Any],
        height: Optional[float] = None,
    ) -> int:
        """Write scalar values with the data style; ``None`` leaves a styled empty cell."""
        row = report_sheet.next_row
        style = document.styles.style(StyleKind.DATA_CELL)
        for column, value in enumerate(values, 1):
            cell = report_sheet.sheet.cell(row=row, column=column)
            if value is not None:
                cell.value = value
            cell.style = style
        report_sheet.sheet.row_dimensions[row].height = height or self.data_row_height
        report_sheet.next_row = row + 1
        return report_sheet.next_row

    def write_section_header(
        self,
        document: ReportDocument,
        report_sheet: ReportSheet,
        text: str,
        colspan: Optional[int] = None,
    ) -> int:
        row = report_sheet.next_row
        colspan = colspan or self.banner_columns
        if colspan > 1:
            report_sheet.sheet.merge_cells(
                start_row=row, start_column=1, end_row=row, end_column=colspan
            )
        cell = report_sheet.sheet.cell(row=row, column=1, value=text)
        cell.style = document.styles.style(StyleKind.SECTION_BANNER)
        report_sheet.sheet.row_dimensions[row].height = self.title_row_height
        report_sheet.next_row = row + 1
        return report_sheet.next_row

    def skip_rows(self, report_sheet: ReportSheet, count: int) -> int:
        report_sheet.next_row += count
        return report_sheet.next_row
