"""JSON payloads to domain models.

Payload files are produced by the data-capture side (or written by hand) and
drive the command line exports. Image references are resolved relative to the
payload file.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

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
    RecordKind,
    SecurityCheck,
    SecurityStatus,
    TemplateCell,
    TemplateColumn,
    TemplateRow,
    WorkOrderCheck,
)
from .utils.exceptions import ReportIOError, ValidationError
from .utils.file_utils import load_image_reference
from .utils.validation import validate_export_payload, validate_template_payload

logger = logging.getLogger(__name__)


@dataclass
class ExportPayload:
    """Everything a record export needs, parsed from one payload."""

    records: List[DomainRecord] = field(default_factory=list)
    machines: List[Machine] = field(default_factory=list)
    operators: List[Operator] = field(default_factory=list)
    operator_names: List[str] = field(default_factory=list)
    signatures: List[OperatorSignature] = field(default_factory=list)


def load_json_file(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise ReportIOError(f"Failed to read {path}: {e}", path=str(path))


def parse_timestamp(value: Optional[Union[str, int, float]]) -> datetime:
    """Accept ISO-8601 strings or epoch milliseconds."""
    if value is None:
        return datetime.now()
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError) as e:
            raise ValidationError(f"Invalid timestamp {value!r}: {e}")
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp {value!r}: {e}")


def _parse_kind(item: Dict[str, Any]) -> RecordKind:
    kind = item.get("kind", "plain")
    if kind == "work_order":
        return WorkOrderCheck(details=item.get("work_order_details", ""))
    if kind == "security":
        return SecurityCheck(status=SecurityStatus(item.get("security_status", "NOT_SET")))
    return PlainCheck()


def _resolve_image(reference: Optional[str], base_dir: Path) -> Optional[Union[bytes, str]]:
    if not reference:
        return None
    return load_image_reference(reference, base_dir)


def parse_record(item: Dict[str, Any], base_dir: Path) -> DomainRecord:
    return DomainRecord(
        title=item["title"],
        notes=item.get("notes", ""),
        image=_resolve_image(item.get("image"), base_dir),
        timestamp=parse_timestamp(item.get("timestamp")),
        status=item.get("status", ""),
        kind=_parse_kind(item),
        machine_id=item.get("machine_id"),
        machine_title=item.get("machine_title", ""),
    )


def parse_export_payload(
    payload: Dict[str, Any], base_dir: Union[str, Path] = "."
) -> ExportPayload:
    """Validate and convert a record export payload.

    Raises:
        ValidationError: if the payload does not match the expected structure.
    """
    validate_export_payload(payload)
    base_dir = Path(base_dir)

    return ExportPayload(
        records=[parse_record(item, base_dir) for item in payload["records"]],
        machines=[
            Machine(
                id=item["id"],
                title=item.get("title", ""),
                operator_ids=tuple(item.get("operator_ids", ())),
            )
            for item in payload.get("machines", [])
        ],
        operators=[
            Operator(id=item["id"], name=item["name"], department=item.get("department", ""))
            for item in payload.get("operators", [])
        ],
        operator_names=list(payload.get("operator_names", [])),
        signatures=[
            OperatorSignature(
                operator_name=item["operator_name"],
                image=_resolve_image(item.get("image"), base_dir),
            )
            for item in payload.get("signatures", [])
        ],
    )


def _parse_cell_style(item: Optional[Dict[str, Any]]) -> CellStyle:
    if not item:
        return CellStyle()
    return CellStyle(
        bold=item.get("bold", False),
        italic=item.get("italic", False),
        background_color=item.get("background_color"),
        text_color=item.get("text_color"),
        font_size=item.get("font_size", 11),
        alignment=CellAlignment(item.get("alignment", "LEFT")),
    )


def parse_template(payload: Dict[str, Any]) -> ExcelTemplate:
    """Validate and convert a template payload."""
    validate_template_payload(payload)

    columns = [
        TemplateColumn(
            id=item["id"],
            name=item["name"],
            width=item.get("width", 15),
            data_type=ColumnDataType(item.get("data_type", "TEXT")),
        )
        for item in payload.get("columns", [])
    ]

    rows = []
    for position, item in enumerate(payload.get("rows", [])):
        cells = tuple(
            TemplateCell(
                column_id=cell["column_id"],
                value="" if cell.get("value") is None else str(cell["value"]),
                style=_parse_cell_style(cell.get("style")),
            )
            for cell in item.get("cells", [])
        )
        rows.append(
            TemplateRow(
                row_index=item.get("row_index", position),
                is_header=item.get("is_header", False),
                height=item.get("height", 20.0),
                cells=cells,
            )
        )

    return ExcelTemplate(
        name=payload["name"],
        columns=tuple(columns),
        rows=tuple(rows),
        description=payload.get("description", ""),
    )


def load_export_payload(path: Union[str, Path]) -> ExportPayload:
    path = Path(path)
    payload = parse_export_payload(load_json_file(path), base_dir=path.parent)
    logger.info(f"Loaded {len(payload.records)} records from {path}")
    return payload


def load_template(path: Union[str, Path]) -> ExcelTemplate:
    template = parse_template(load_json_file(path))
    logger.info(f"Loaded template '{template.name}' from {path}")
    return template
