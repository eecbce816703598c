"""Export orchestrators: records in, a saved multi-sheet report out.

All exports share one single-sheet algorithm, parameterized by a
``SheetSchema``. Each call runs inside its own ``ExportSession`` so the temp
files holding compressed photos are removed on every exit path.
"""

import logging
import math
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .cell_embedder import CellImageEmbedder
from .config_manager import default_report_settings
from .document import ReportDocument, sanitize_sheet_name
from .image_pipeline import ImageCompressor
from .models import (
    ColumnDataType,
    DomainRecord,
    ExcelTemplate,
    ImageSource,
    Machine,
    Operator,
    OperatorSignature,
    PlainCheck,
    SecurityCheck,
    WorkOrderCheck,
    collect_operator_names,
)
from .sheet_layout import ReportSheet, SheetLayoutBuilder
from .style_registry import StyleKind
from .temp_file_manager import ExportSession, TempFileManager
from .utils.exceptions import ExportCancelledError, ImageDecodeError
from .utils.file_utils import ensure_directory_exists, generate_unique_filename

logger = logging.getLogger(__name__)

OPERATOR_SUMMARY_LABEL = "Kontrol Yapan Operatörler"
SIGNATURE_SECTION_TITLE = "Operatör İmzaları"

WORK_ORDER_FILE_PREFIX = "IsEmri"
GENERAL_CONTROL_FILE_PREFIX = "GenelKontrol_Birlesik"

# Record number shown in the "No" column, and the record itself
ValueGetter = Callable[[int, DomainRecord], Any]


@dataclass(frozen=True)
class ColumnSpec:
    """One column of a record sheet."""

    label: str
    width: float
    value: Optional[ValueGetter] = None
    is_photo: bool = False


@dataclass(frozen=True)
class SheetSchema:
    """Name, title and ordered columns of a record sheet."""

    sheet_name: str
    title: str
    columns: Sequence[ColumnSpec]

    @property
    def labels(self) -> List[str]:
        return [column.label for column in self.columns]

    @property
    def widths(self) -> List[float]:
        return [column.width for column in self.columns]

    @property
    def photo_column(self) -> Optional[int]:
        """1-based index of the photo column, if the sheet has one."""
        for index, column in enumerate(self.columns, 1):
            if column.is_photo:
                return index
        return None


@dataclass
class ExportResult:
    """Outcome of one export call."""

    path: Path
    sheet_names: List[str] = field(default_factory=list)
    rows_written: int = 0
    pictures_embedded: int = 0
    decode_failures: int = 0


@dataclass
class _ExportRun:
    """Mutable state of one export call."""

    document: ReportDocument
    session: ExportSession
    generated_at: datetime
    cancel_event: Optional[threading.Event] = None
    rows_written: int = 0
    pictures_embedded: int = 0
    decode_failures: int = 0

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ExportCancelledError("Export cancelled by caller")


class ReportExporter:
    """Builds and saves the general-control, work-order and template reports."""

    def __init__(
        self,
        settings: Optional[Dict[str, Any]] = None,
        compressor: Optional[ImageCompressor] = None,
        embedder: Optional[CellImageEmbedder] = None,
        layout: Optional[SheetLayoutBuilder] = None,
        temp_manager: Optional[TempFileManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or default_report_settings()
        self.compressor = compressor or ImageCompressor(self.settings)
        self.embedder = embedder or CellImageEmbedder(self.settings)
        self.layout = layout or SheetLayoutBuilder(self.settings)
        self.temp_manager = temp_manager or TempFileManager(self.settings)
        self.clock = clock or datetime.now

        layout_config = self.settings.get("layout", {})
        self.photo_row_height = layout_config.get("photo_row_height", 150)
        self.signature_row_height = layout_config.get("signature_row_height", 60)

        formats = self.settings.get("formats", {})
        self.record_date_format = formats.get("record_date", "%d/%m/%Y %H:%M")
        self.file_timestamp_format = formats.get("file_timestamp", "%Y%m%d_%H%M%S")

        output_config = self.settings.get("output", {})
        self.output_dir = output_config.get("directory", "reports")
        self.disambiguate_names = output_config.get("disambiguate_names", True)

    # ------------------------------------------------------------------
    # Sheet schemas
    # ------------------------------------------------------------------

    def _format_date(self, record: DomainRecord) -> str:
        return record.timestamp.strftime(self.record_date_format)

    def work_order_schema(self, sheet_name: str = "İş Emirleri") -> SheetSchema:
        return SheetSchema(
            sheet_name=sheet_name,
            title="İş Emri - Yapılacak İşler",
            columns=(
                ColumnSpec("No", 10, lambda number, record: number),
                ColumnSpec("Makina", 25, lambda number, record: record.machine_title),
                ColumnSpec("Başlık", 30, lambda number, record: record.title),
                ColumnSpec("Tarih", 20, lambda number, record: self._format_date(record)),
                ColumnSpec("Durum", 20, lambda number, record: record.status_label),
                ColumnSpec(
                    "Yapılacak İşler", 50, lambda number, record: record.work_order_details
                ),
                ColumnSpec("Fotoğraf", 50, is_photo=True),
            ),
        )

    def work_order_detail_schema(self) -> SheetSchema:
        return SheetSchema(
            sheet_name="Yapılacak İşler",
            title="Yapılacak İşler Detay",
            columns=(
                ColumnSpec("No", 10, lambda number, record: number),
                ColumnSpec("Makina İsmi", 30, lambda number, record: record.machine_title),
                ColumnSpec("Kontrol Başlığı", 35, lambda number, record: record.title),
                ColumnSpec("Açıklama", 50, lambda number, record: record.notes),
                ColumnSpec(
                    "Yapılacak İşler", 50, lambda number, record: record.work_order_details
                ),
                ColumnSpec("Tarih", 20, lambda number, record: self._format_date(record)),
                ColumnSpec("Fotoğraf", 50, is_photo=True),
            ),
        )

    def general_control_schema(self) -> SheetSchema:
        return SheetSchema(
            sheet_name="Birleşik Kontrol",
            title="Birleşik Genel Kontrol Raporu",
            columns=(
                ColumnSpec("No", 10, lambda number, record: number),
                ColumnSpec("Makina", 25, lambda number, record: record.machine_title),
                ColumnSpec("Başlık", 30, lambda number, record: record.title),
                ColumnSpec("Notlar", 30, lambda number, record: record.notes),
                ColumnSpec("Tarih", 20, lambda number, record: self._format_date(record)),
                ColumnSpec("Durum", 20, lambda number, record: record.status_label),
                ColumnSpec("Fotoğraf", 50, is_photo=True),
            ),
        )

    # ------------------------------------------------------------------
    # Public exports
    # ------------------------------------------------------------------

    def export_work_orders(
        self,
        records: Sequence[DomainRecord],
        machines: Sequence[Machine] = (),
        operators: Sequence[Operator] = (),
        output_dir: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        """Export work orders to a two-sheet report.

        Both sheets list the same records. Each photo is compressed once and
        the second sheet reuses the compressed bytes from the session.
        """
        logger.info(f"Exporting {len(records)} work orders")
        summary = self._operator_summary(collect_operator_names(records, machines, operators))
        entries = list(enumerate(records))

        def build(run: _ExportRun) -> None:
            self._write_records_sheet(run, self.work_order_schema(), entries, summary)
            self._write_records_sheet(run, self.work_order_detail_schema(), entries, summary)

        return self._run_export(WORK_ORDER_FILE_PREFIX, build, output_dir, cancel_event)

    def export_general_control(
        self,
        records: Sequence[DomainRecord],
        operator_names: Sequence[str] = (),
        signatures: Sequence[OperatorSignature] = (),
        output_dir: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        """Export control checks, routing work-order checks to their own sheet."""
        logger.info(f"Exporting {len(records)} general control records")
        control_entries, work_order_entries = self._split_by_kind(records)
        summary = self._operator_summary(operator_names)

        def build(run: _ExportRun) -> None:
            main_sheet = self._write_records_sheet(
                run, self.general_control_schema(), control_entries, summary
            )
            self._write_signatures(run, main_sheet, signatures)

            if work_order_entries:
                work_order_sheet = self._write_records_sheet(
                    run,
                    self.work_order_schema(sheet_name="Yapılacak İşler"),
                    work_order_entries,
                    get_or_create=True,
                )
                self._write_signatures(run, work_order_sheet, signatures)

        return self._run_export(GENERAL_CONTROL_FILE_PREFIX, build, output_dir, cancel_event)

    def export_template(
        self,
        template: ExcelTemplate,
        output_dir: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        """Export a user-authored template as a single sheet without photos.

        Raises:
            InvalidNameError: if the template name is blank.
        """
        sheet_name = sanitize_sheet_name(template.name)
        prefix = sheet_name.replace(" ", "_")
        logger.info(f"Exporting template '{template.name}' ({len(template.rows)} rows)")

        def build(run: _ExportRun) -> None:
            self._write_template_sheet(run, sheet_name, template)

        return self._run_export(prefix, build, output_dir, cancel_event)

    # ------------------------------------------------------------------
    # Shared machinery
    # ------------------------------------------------------------------

    def _run_export(
        self,
        prefix: str,
        build: Callable[[_ExportRun], None],
        output_dir: Optional[str],
        cancel_event: Optional[threading.Event],
    ) -> ExportResult:
        generated_at = self.clock()
        document = ReportDocument()
        try:
            with self.temp_manager.session() as session:
                run = _ExportRun(
                    document=document,
                    session=session,
                    generated_at=generated_at,
                    cancel_event=cancel_event,
                )
                build(run)
                run.check_cancelled()

                target = self._output_path(prefix, output_dir, generated_at)
                sheet_names = document.sheet_names
                path = document.save(target)
        finally:
            document.close()

        result = ExportResult(
            path=path,
            sheet_names=sheet_names,
            rows_written=run.rows_written,
            pictures_embedded=run.pictures_embedded,
            decode_failures=run.decode_failures,
        )
        logger.info(
            f"Export complete: {path} ({result.rows_written} rows, "
            f"{result.pictures_embedded} pictures, {result.decode_failures} decode failures)"
        )
        return result

    def _output_path(self, prefix: str, output_dir: Optional[str], generated_at: datetime) -> str:
        directory = ensure_directory_exists(output_dir or self.output_dir)
        timestamp = generated_at.strftime(self.file_timestamp_format)
        base_path = os.path.join(directory, f"{prefix}_{timestamp}")
        if self.disambiguate_names:
            return generate_unique_filename(base_path, ".xlsx")
        return f"{base_path}.xlsx"

    @staticmethod
    def _operator_summary(operator_names: Sequence[str]) -> Optional[str]:
        if not operator_names:
            return None
        return f"{OPERATOR_SUMMARY_LABEL}: {', '.join(operator_names)}"

    @staticmethod
    def _split_by_kind(
        records: Sequence[DomainRecord],
    ) -> Tuple[List[Tuple[int, DomainRecord]], List[Tuple[int, DomainRecord]]]:
        control_entries = []
        work_order_entries = []
        for index, record in enumerate(records):
            kind = record.kind
            if isinstance(kind, WorkOrderCheck):
                work_order_entries.append((index, record))
            elif isinstance(kind, (PlainCheck, SecurityCheck)):
                control_entries.append((index, record))
            else:
                raise TypeError(f"Unknown record kind: {kind!r}")
        return control_entries, work_order_entries

    def _write_records_sheet(
        self,
        run: _ExportRun,
        schema: SheetSchema,
        entries: Sequence[Tuple[int, DomainRecord]],
        summary: Optional[str] = None,
        get_or_create: bool = False,
    ) -> ReportSheet:
        """Lay out ``schema`` and write one row per entry.

        ``entries`` pairs each record with its position in the caller's list;
        the position keys the record's photo in the export session.
        """
        if get_or_create:
            report_sheet = self.layout.get_or_create_report_sheet(
                run.document, schema.sheet_name, schema.title, run.generated_at
            )
        else:
            report_sheet = self.layout.new_report_sheet(
                run.document, schema.sheet_name, schema.title, run.generated_at
            )
        self.layout.set_column_widths(report_sheet, schema.widths)

        if summary:
            self.layout.write_summary_row(run.document, report_sheet, summary)
        self.layout.write_column_headers(run.document, report_sheet, schema.labels)

        photo_column = schema.photo_column
        row_height = self.photo_row_height if photo_column else None

        for number, (key, record) in enumerate(entries, 1):
            run.check_cancelled()
            row = report_sheet.next_row
            values = [
                None if column.is_photo or column.value is None else column.value(number, record)
                for column in schema.columns
            ]
            self.layout.write_data_row(run.document, report_sheet, values, height=row_height)
            run.rows_written += 1

            if photo_column and record.has_image:
                self._place_photo(run, report_sheet, key, record.image, row, photo_column)

        logger.debug(f"Wrote {len(entries)} records to sheet '{schema.sheet_name}'")
        return report_sheet

    def _write_signatures(
        self,
        run: _ExportRun,
        report_sheet: ReportSheet,
        signatures: Sequence[OperatorSignature],
    ) -> None:
        """Append the operator signature block below the data rows."""
        if not signatures:
            return

        self.layout.skip_rows(report_sheet, 2)
        self.layout.write_section_header(run.document, report_sheet, SIGNATURE_SECTION_TITLE)

        for index, signature in enumerate(signatures):
            run.check_cancelled()
            row = report_sheet.next_row
            self.layout.write_data_row(
                run.document,
                report_sheet,
                [signature.operator_name, None],
                height=self.signature_row_height,
            )
            if signature.image is not None:
                # Negative keys keep signatures apart from record photos
                self._place_photo(
                    run,
                    report_sheet,
                    -(index + 1),
                    signature.image,
                    row,
                    2,
                    row_height=self.signature_row_height,
                )

    def _place_photo(
        self,
        run: _ExportRun,
        report_sheet: ReportSheet,
        key: int,
        source: ImageSource,
        row: int,
        column: int,
        row_height: Optional[float] = None,
    ) -> None:
        compressed = self._compressed_photo(run, key, source)
        if compressed is None:
            return
        picture = self.embedder.embed(
            run.document, report_sheet.sheet, compressed, row, column, row_height=row_height
        )
        if picture is not None:
            run.pictures_embedded += 1

    def _compressed_photo(
        self, run: _ExportRun, key: int, source: ImageSource
    ) -> Optional[bytes]:
        """Compressed bytes for ``key``, compressing on first use only."""
        if run.session.has_failed(key):
            return None

        cached = run.session.read(key)
        if cached is not None:
            return cached

        try:
            data = self.compressor.compress(source)
        except ImageDecodeError as e:
            logger.warning(f"Skipping photo for record {key}: {e}")
            run.session.mark_failed(key)
            run.decode_failures += 1
            return None

        run.session.store(key, data)
        return data

    def _write_template_sheet(
        self, run: _ExportRun, sheet_name: str, template: ExcelTemplate
    ) -> None:
        document = run.document
        sheet = document.create_sheet(sheet_name)
        report_sheet = ReportSheet(sheet=sheet, next_row=1)

        self.layout.set_column_widths(report_sheet, [column.width for column in template.columns])

        for template_row in template.rows:
            run.check_cancelled()
            row = report_sheet.next_row
            base = StyleKind.COLUMN_HEADER if template_row.is_header else StyleKind.DATA_CELL

            for column_index, column in enumerate(template.columns, 1):
                template_cell = template_row.cell_for(column.id)
                cell = sheet.cell(row=row, column=column_index)
                if template_cell is not None:
                    cell.value = self._template_value(
                        template_cell.value, column.data_type, template_row.is_header
                    )
                    cell.style = document.styles.custom(base, template_cell.style)
                else:
                    cell.style = document.styles.style(base)

            sheet.row_dimensions[row].height = template_row.height
            report_sheet.next_row = row + 1
            run.rows_written += 1

    @staticmethod
    def _template_value(value: str, data_type: ColumnDataType, is_header: bool) -> Any:
        if is_header or data_type is not ColumnDataType.NUMBER:
            return value
        try:
            number = float(value.replace(",", "."))
        except (AttributeError, ValueError):
            return value
        if not math.isfinite(number):
            return value
        return int(number) if number.is_integer() else number
