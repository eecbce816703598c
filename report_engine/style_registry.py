"""Reusable cell styles for report sheets.

Styles are registered with the workbook as named styles, once per document,
so every cell of the same kind shares one style record in the saved file.
"""

import hashlib
import logging
import re
from enum import Enum
from typing import Dict, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, NamedStyle, PatternFill, Side

from .models import CellAlignment, CellStyle
from .utils.exceptions import ValidationError
from .utils.validation import COLOR_PATTERN

logger = logging.getLogger(__name__)

BANNER_FILL = "003366"
SECTION_FILL = "C0C0C0"


class StyleKind(str, Enum):
    HEADER_BANNER = "header_banner"
    TITLE = "title"
    SECTION_BANNER = "section_banner"
    COLUMN_HEADER = "column_header"
    DATA_CELL = "data_cell"


def _thin_border() -> Border:
    side = Side(style="thin")
    return Border(left=side, right=side, top=side, bottom=side)


def _solid(color: str) -> PatternFill:
    return PatternFill(fill_type="solid", start_color=color, end_color=color)


def _build(kind: StyleKind) -> NamedStyle:
    style = NamedStyle(name=f"report_{kind.value}")

    if kind is StyleKind.HEADER_BANNER:
        style.font = Font(bold=True, size=14, color="FFFFFF")
        style.fill = _solid(BANNER_FILL)
        style.alignment = Alignment(horizontal="center", vertical="center")
    elif kind is StyleKind.TITLE:
        style.font = Font(bold=True, size=12)
        style.alignment = Alignment(horizontal="center", vertical="center")
    elif kind is StyleKind.SECTION_BANNER:
        style.font = Font(bold=True, size=11)
        style.fill = _solid(SECTION_FILL)
        style.alignment = Alignment(horizontal="left", vertical="center")
    elif kind is StyleKind.COLUMN_HEADER:
        style.font = Font(bold=True, size=11)
        style.fill = _solid(SECTION_FILL)
        style.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        style.border = _thin_border()
    elif kind is StyleKind.DATA_CELL:
        style.alignment = Alignment(vertical="center", wrap_text=True)
        style.border = _thin_border()
    else:
        raise ValueError(f"Unknown style kind: {kind}")

    return style


def _normalize_color(color: str) -> str:
    """Convert "#RRGGBB" / "RRGGBB" / "AARRGGBB" to openpyxl's ARGB form."""
    if not re.match(COLOR_PATTERN, color.strip()):
        raise ValidationError(f"Invalid color '{color}': expected #RRGGBB or AARRGGBB hex")
    value = color.strip().lstrip("#").upper()
    if len(value) == 6:
        value = "FF" + value
    return value


class StyleRegistry:
    """Builds and caches the named styles of one workbook.

    The registry is the only place styles are added to its workbook, so
    each workbook gets exactly one registry (see ``ReportDocument``).
    """

    def __init__(self, workbook: Workbook) -> None:
        self.workbook = workbook
        self._styles: Dict[object, NamedStyle] = {}

    def style(self, kind: StyleKind) -> NamedStyle:
        """Return the shared style for ``kind``, registering it on first use."""
        cached = self._styles.get(kind)
        if cached is not None:
            return cached

        style = self._register(_build(kind))
        self._styles[kind] = style
        return style

    def custom(self, base: StyleKind, cell_style: CellStyle) -> NamedStyle:
        """Return ``base`` adjusted by a template cell style.

        Value-equal descriptors always map to the same named style.
        """
        if cell_style.is_default:
            return self.style(base)

        key: Tuple[object, ...] = (base, cell_style)
        cached = self._styles.get(key)
        if cached is not None:
            return cached

        base_style = self.style(base)
        digest = hashlib.sha1(repr(cell_style).encode("utf-8")).hexdigest()[:10]
        style = NamedStyle(name=f"{base_style.name}_{digest}")
        style.font = Font(
            bold=cell_style.bold or bool(base_style.font.b),
            italic=cell_style.italic,
            size=cell_style.font_size,
            color=_normalize_color(cell_style.text_color) if cell_style.text_color else None,
        )
        if cell_style.background_color:
            style.fill = _solid(_normalize_color(cell_style.background_color))
        else:
            style.fill = base_style.fill
        style.border = base_style.border
        style.alignment = Alignment(
            horizontal=_HORIZONTAL[cell_style.alignment],
            vertical="center",
            wrap_text=base_style.alignment.wrap_text,
        )

        style = self._register(style)
        self._styles[key] = style
        return style

    def _register(self, style: NamedStyle) -> NamedStyle:
        self.workbook.add_named_style(style)
        logger.debug(f"Registered named style: {style.name}")
        return style

    def __len__(self) -> int:
        return len(self._styles)


_HORIZONTAL = {
    CellAlignment.LEFT: "left",
    CellAlignment.CENTER: "center",
    CellAlignment.RIGHT: "right",
}
