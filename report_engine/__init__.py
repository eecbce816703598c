"""TechAssist report engine: inspection records to photo-embedded Excel reports."""

from .cell_embedder import Anchor, CellImageEmbedder, Picture
from .config_manager import ConfigManager, default_report_settings
from .document import ReportDocument
from .exporters import ColumnSpec, ExportResult, ReportExporter, SheetSchema
from .image_pipeline import CompressedImage, ImageCompressor
from .models import (
    CellAlignment,
    CellStyle,
    ColumnDataType,
    DomainRecord,
    ExcelTemplate,
    Machine,
    Operator,
    OperatorSignature,
    PlainCheck,
    SecurityCheck,
    SecurityStatus,
    TemplateCell,
    TemplateColumn,
    TemplateRow,
    WorkOrderCheck,
)
from .sheet_layout import ReportSheet, SheetLayoutBuilder
from .style_registry import StyleKind, StyleRegistry
from .temp_file_manager import ExportSession, TempFileManager

__version__ = "1.0.0"
