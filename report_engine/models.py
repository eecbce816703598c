"""Domain models consumed by the report engine.

Records are produced by the surrounding application (UI, on-device store) and
are read-only here. The kind of a record is a tagged variant so exporters can
dispatch on it exhaustively instead of probing nullable fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

ImageSource = Union[bytes, str, Path]


class SecurityStatus(str, Enum):
    """Security control status captured with a security check."""

    NOT_SET = "NOT_SET"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


@dataclass(frozen=True)
class PlainCheck:
    """An ordinary photographed control check."""


@dataclass(frozen=True)
class WorkOrderCheck:
    """A control check that raised a work order."""

    details: str = ""


@dataclass(frozen=True)
class SecurityCheck:
    """A security control check with its safety-device status."""

    status: SecurityStatus = SecurityStatus.NOT_SET


RecordKind = Union[PlainCheck, WorkOrderCheck, SecurityCheck]


@dataclass(frozen=True)
class DomainRecord:
    """One inspection/control/work-order entry."""

    title: str
    notes: str = ""
    image: Optional[ImageSource] = None
    timestamp: datetime = field(default_factory=datetime.now)
    status: str = ""
    kind: RecordKind = field(default_factory=PlainCheck)
    machine_id: Optional[int] = None
    machine_title: str = ""

    @property
    def has_image(self) -> bool:
        return self.image is not None and self.image not in (b"", "")

    @property
    def requires_work_order(self) -> bool:
        return isinstance(self.kind, WorkOrderCheck)

    @property
    def work_order_details(self) -> str:
        if isinstance(self.kind, WorkOrderCheck):
            return self.kind.details
        return ""

    @property
    def status_label(self) -> str:
        """Status text shown in the report, derived from the kind when blank."""
        if self.status:
            return self.status
        kind = self.kind
        if isinstance(kind, WorkOrderCheck):
            return "İş Emri Gerekli"
        if isinstance(kind, SecurityCheck):
            if kind.status is SecurityStatus.ACTIVE:
                return "Güvenlik Aktif"
            if kind.status is SecurityStatus.INACTIVE:
                return "Güvenlik Devre Dışı"
            return ""
        if isinstance(kind, PlainCheck):
            return ""
        raise TypeError(f"Unknown record kind: {kind!r}")


@dataclass(frozen=True)
class Operator:
    """A person who performs maintenance controls."""

    id: int
    name: str
    department: str = ""


@dataclass(frozen=True)
class Machine:
    """A machine under control, with the operators assigned to it."""

    id: int
    title: str = ""
    operator_ids: Sequence[int] = ()


@dataclass(frozen=True)
class OperatorSignature:
    """An operator's name with an optional captured signature image."""

    operator_name: str
    image: Optional[ImageSource] = None


def collect_operator_names(
    records: Iterable[DomainRecord],
    machines: Iterable[Machine],
    operators: Iterable[Operator],
) -> List[str]:
    """Return operator names for machines that contributed at least one record.

    Names keep the order of ``operators`` and are not repeated.
    """
    contributing = {r.machine_id for r in records if r.machine_id is not None}
    operator_ids = set()
    for machine in machines:
        if machine.id in contributing:
            operator_ids.update(machine.operator_ids)

    names: List[str] = []
    for operator in operators:
        if operator.id in operator_ids and operator.name not in names:
            names.append(operator.name)
    return names


class CellAlignment(str, Enum):
    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"


class ColumnDataType(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    IMAGE = "IMAGE"


@dataclass(frozen=True)
class CellStyle:
    """Per-cell styling chosen in the template builder."""

    bold: bool = False
    italic: bool = False
    background_color: Optional[str] = None
    text_color: Optional[str] = None
    font_size: int = 11
    alignment: CellAlignment = CellAlignment.LEFT

    @property
    def is_default(self) -> bool:
        return self == CellStyle()


@dataclass(frozen=True)
class TemplateColumn:
    id: int
    name: str
    width: float = 15
    data_type: ColumnDataType = ColumnDataType.TEXT


@dataclass(frozen=True)
class TemplateCell:
    column_id: int
    value: str = ""
    style: CellStyle = field(default_factory=CellStyle)


@dataclass(frozen=True)
class TemplateRow:
    row_index: int
    is_header: bool = False
    height: float = 20.0
    cells: Sequence[TemplateCell] = ()

    def cell_for(self, column_id: int) -> Optional[TemplateCell]:
        for cell in self.cells:
            if cell.column_id == column_id:
                return cell
        return None


@dataclass(frozen=True)
class ExcelTemplate:
    """A user-authored sheet layout exported without photos."""

    name: str
    columns: Sequence[TemplateColumn] = ()
    rows: Sequence[TemplateRow] = ()
    description: str = ""
