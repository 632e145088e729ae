"""
Workbook Layout Engine — turns (line items, export config) into placements.

Output is an ordered list of rows, each carrying its cells, optional merged
range and height, plus sheet-level settings. Nothing here touches xlsxwriter;
the writer walks the placements in emission order.

Sheet structure (rows are 0-based, Excel rows are row + 1):

  [contract]  "OBJETO: ..."            merged A:H, height max(40, ceil(len/100)*20)
  spacer                               15
  [entity]                             merged A:H, 25
  spacer                               15
  [category]  grey fill                merged A:H, 25
  spacer                               15
  [date]      "Fecha: d/m/yyyy"        merged A:H, 20
  [responsible] "Responsable: ..."     merged A:H, 20
  spacer                               20
  table header  ITEM .. SUBTOTAL       35
  one data row per item                25 or text-driven
  [totals]    "TOTALES"                30

Bracketed blocks depend on their flag and non-blank text; spacers are always
emitted. Data-row count always equals len(items) and the totals row, when
present, is always the row right after the last data row.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from pic_budget import config as cfg
from pic_budget.models.line_item import LineItem
from pic_budget.models.workbook_config import HeaderBlocks, StyleTheme, WorkbookConfig

CellValue = Union[str, int, float, None]

ROW_HEADER_BLOCK = "header_block"
ROW_SPACER = "spacer"
ROW_TABLE_HEADER = "table_header"
ROW_DATA = "data"
ROW_TOTALS = "totals"

# Column indexes (A..H)
COL_ITEM, COL_NAME, COL_QTY, COL_PRESENTATION, COL_COST, COL_MARGIN, COL_TOTAL, COL_SUBTOTAL = range(8)
_CURRENCY_COLUMNS = (COL_COST, COL_TOTAL, COL_SUBTOTAL)
_TOTALS_CURRENCY_COLUMNS = (COL_COST, COL_SUBTOTAL)


@dataclass(frozen=True)
class Border:
    top: Optional[str] = None
    left: Optional[str] = None
    bottom: Optional[str] = None
    right: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def all_sides(cls, style: str, color: Optional[str] = None) -> "Border":
        return cls(top=style, left=style, bottom=style, right=style, color=color)


@dataclass(frozen=True)
class CellStyle:
    """Hashable so the writer can cache one xlsxwriter format per style."""
    bold: bool = False
    font_size: int = 10
    font_name: str = cfg.FONT_NAME
    font_color: Optional[str] = None
    bg_color: Optional[str] = None
    num_format: Optional[str] = None
    align: str = "center"
    valign: str = "vcenter"
    wrap: bool = False
    border: Optional[Border] = None


@dataclass(frozen=True)
class CellPlacement:
    row: int
    col: int
    value: CellValue
    style: CellStyle
    formula: Optional[str] = None      # value is then the cached result


@dataclass(frozen=True)
class MergedRange:
    first_row: int
    first_col: int
    last_row: int
    last_col: int


@dataclass
class RowPlacement:
    row: int
    kind: str
    height: float
    cells: List[CellPlacement] = field(default_factory=list)
    merge: Optional[MergedRange] = None


@dataclass
class SheetSettings:
    column_widths: Optional[List[float]]
    orientation: str
    scale: int
    fit_to_page: bool
    margins: dict
    autofilter: Optional[Tuple[int, int, int, int]] = None


@dataclass
class WorkbookLayout:
    sheet_name: str
    rows: List[RowPlacement]
    settings: SheetSettings

    def cells(self) -> Iterator[CellPlacement]:
        for row in self.rows:
            yield from row.cells

    def rows_of_kind(self, kind: str) -> List[RowPlacement]:
        return [r for r in self.rows if r.kind == kind]

    @property
    def data_rows(self) -> List[RowPlacement]:
        return self.rows_of_kind(ROW_DATA)

    @property
    def totals_row(self) -> Optional[RowPlacement]:
        rows = self.rows_of_kind(ROW_TOTALS)
        return rows[0] if rows else None

    @property
    def table_header_row(self) -> RowPlacement:
        return self.rows_of_kind(ROW_TABLE_HEADER)[0]


# ---------------------------------------------------------------------------
# Height estimates
# ---------------------------------------------------------------------------

def contract_row_height(text: str) -> float:
    return max(40, math.ceil(len(text) / 100) * 20)


def data_row_height(name: str, presentation: str) -> float:
    return max(
        cfg.DATA_ROW_HEIGHT,
        math.ceil(len(name) / 45) * 15,
        math.ceil(len(presentation) / 20) * 15,
    )


def format_document_date(value: date) -> str:
    """Day/month/year without padding, e.g. 5/3/2025."""
    return f"{value.day}/{value.month}/{value.year}"


def excel_ref(row: int, col: int) -> str:
    """0-based (row, col) -> A1 reference. Only columns A..Z are needed here."""
    return f"{chr(ord('A') + col)}{row + 1}"


# ---------------------------------------------------------------------------
# Layout builder
# ---------------------------------------------------------------------------

class WorkbookLayoutEngine:
    """Builds a WorkbookLayout; one instance per export, discarded afterwards."""

    def __init__(self, config: WorkbookConfig) -> None:
        self.config = config
        self._rows: List[RowPlacement] = []
        self._next_row = 0

    def build(self, items: Sequence[LineItem]) -> WorkbookLayout:
        self._rows = []
        self._next_row = 0

        self._add_header_blocks(self.config.headers)
        self._add_table_header(self.config.style)
        first_data_row = self._next_row
        self._add_data_rows(items)
        last_data_row = self._next_row - 1
        if self.config.table.include_totals:
            self._add_totals_row(items, first_data_row, last_data_row)

        return WorkbookLayout(
            sheet_name=cfg.SHEET_NAME,
            rows=self._rows,
            settings=self._sheet_settings(),
        )

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def _emit(self, kind: str, height: float, cells=None, merged: bool = False) -> RowPlacement:
        row = self._next_row
        placement = RowPlacement(
            row=row,
            kind=kind,
            height=height,
            cells=list(cells or []),
            merge=MergedRange(row, 0, row, cfg.COLUMN_COUNT - 1) if merged else None,
        )
        self._rows.append(placement)
        self._next_row += 1
        return placement

    def _header_block(self, text: str, height: float, style: CellStyle) -> None:
        row = self._next_row
        self._emit(ROW_HEADER_BLOCK, height, [CellPlacement(row, 0, text, style)], merged=True)

    def _spacer(self, height: float = cfg.SPACER_ROW_HEIGHT) -> None:
        self._emit(ROW_SPACER, height)

    def _add_header_blocks(self, headers: HeaderBlocks) -> None:
        align = "center" if headers.center_headers else "left"
        thin = Border.all_sides("thin")

        if headers.include_contract and headers.contract_text.strip():
            self._header_block(
                f"OBJETO: {headers.contract_text}",
                contract_row_height(headers.contract_text),
                CellStyle(bold=True, font_size=12, align=align, wrap=True),
            )
        self._spacer()

        if headers.include_entity and headers.entity_name.strip():
            self._header_block(
                headers.entity_name,
                cfg.ENTITY_ROW_HEIGHT,
                CellStyle(bold=True, font_size=11, align=align, wrap=True, border=thin),
            )
        self._spacer()

        if headers.include_category and headers.category_text.strip():
            self._header_block(
                headers.category_text,
                cfg.ENTITY_ROW_HEIGHT,
                CellStyle(bold=True, font_size=11, align=align, wrap=True,
                          bg_color=cfg.CATEGORY_BLOCK_FILL, border=thin),
            )
        self._spacer()

        if headers.include_date and headers.document_date is not None:
            self._header_block(
                f"Fecha: {format_document_date(headers.document_date)}",
                cfg.DATE_ROW_HEIGHT,
                CellStyle(font_size=10, align=align),
            )

        if headers.include_responsible and headers.responsible_name.strip():
            self._header_block(
                f"Responsable: {headers.responsible_name}",
                cfg.DATE_ROW_HEIGHT,
                CellStyle(font_size=10, align=align),
            )

        self._spacer(cfg.TABLE_SPACER_ROW_HEIGHT)

    def _add_table_header(self, style: StyleTheme) -> None:
        cell_style = CellStyle(
            bold=True,
            font_size=11,
            font_color=style.header_text_color,
            bg_color=style.header_bg_color,
            wrap=True,
            border=Border.all_sides(style.border_style, style.border_color),
        )
        row = self._next_row
        cells = [CellPlacement(row, col, title, cell_style) for col, title in enumerate(cfg.TABLE_HEADERS)]
        self._emit(ROW_TABLE_HEADER, cfg.TABLE_HEADER_ROW_HEIGHT, cells)

    def _data_style(self, index: int, col: int) -> CellStyle:
        style, table = self.config.style, self.config.table
        fill = style.odd_row_color if index % 2 == 0 else style.even_row_color
        num_format = None
        if table.currency_format:
            if col in _CURRENCY_COLUMNS:
                num_format = cfg.CURRENCY_FORMAT
            elif col == COL_MARGIN:
                num_format = cfg.PERCENT_FORMAT
        return CellStyle(
            font_size=10,
            bg_color=fill,
            num_format=num_format,
            wrap=True,
            border=Border.all_sides("thin", style.border_color),
        )

    def _add_data_rows(self, items: Sequence[LineItem]) -> None:
        table = self.config.table
        for index, item in enumerate(items):
            row = self._next_row
            margin = item.margin / 100.0 if table.currency_format else item.margin
            values: List[CellValue] = [
                item.item,
                item.name,
                item.quantity,
                item.presentation,
                item.cost,
                margin,
                item.total,
                item.subtotal,
            ]
            cells = []
            for col, value in enumerate(values):
                formula = None
                if col == COL_SUBTOTAL and table.include_formulas:
                    formula = f"={excel_ref(row, COL_TOTAL)}*{excel_ref(row, COL_QTY)}"
                cells.append(CellPlacement(row, col, value, self._data_style(index, col), formula))

            height = (
                data_row_height(item.name, item.presentation)
                if table.auto_row_height
                else cfg.DATA_ROW_HEIGHT
            )
            self._emit(ROW_DATA, height, cells)

    def _add_totals_row(self, items: Sequence[LineItem], first: int, last: int) -> None:
        table, style = self.config.table, self.config.style
        total_cost = sum(i.cost_subtotal for i in items)
        total_budget = sum(i.subtotal for i in items)

        values: List[CellValue] = ["", cfg.TOTALS_LABEL, "", "", total_cost, "", "", total_budget]
        formulas = {}
        if table.include_formulas and items:
            formulas[COL_COST] = (
                f"=SUMPRODUCT({excel_ref(first, COL_COST)}:{excel_ref(last, COL_COST)},"
                f"{excel_ref(first, COL_QTY)}:{excel_ref(last, COL_QTY)})"
            )
            formulas[COL_SUBTOTAL] = f"=SUM({excel_ref(first, COL_SUBTOTAL)}:{excel_ref(last, COL_SUBTOTAL)})"

        # Heavier than data rows whatever the configured border style
        border = Border(top="medium", left="thin", bottom="medium", right="thin")
        row = self._next_row
        cells = []
        for col, value in enumerate(values):
            num_format = cfg.CURRENCY_FORMAT if table.currency_format and col in _TOTALS_CURRENCY_COLUMNS else None
            cell_style = CellStyle(
                bold=True,
                font_size=11,
                bg_color=style.total_row_bg_color,
                num_format=num_format,
                wrap=True,
                border=border,
            )
            cells.append(CellPlacement(row, col, value, cell_style, formulas.get(col)))
        self._emit(ROW_TOTALS, cfg.TOTALS_ROW_HEIGHT, cells)

    # ------------------------------------------------------------------
    # Sheet settings
    # ------------------------------------------------------------------

    def _find_marker_row(self) -> Optional[int]:
        for placement in self._rows:
            for cell in placement.cells:
                if cell.col == 0 and cell.value == cfg.TABLE_HEADER_MARKER:
                    return placement.row
        return None

    def _sheet_settings(self) -> SheetSettings:
        table, page = self.config.table, self.config.page

        widths = None
        if table.auto_column_width:
            widths = [min(w, table.max_column_width) for w in cfg.BASE_COLUMN_WIDTHS]

        autofilter = None
        if table.auto_filters:
            header_row = self._find_marker_row()
            if header_row is not None:
                last_row = self._rows[-1].row
                autofilter = (header_row, 0, last_row, cfg.COLUMN_COUNT - 1)

        return SheetSettings(
            column_widths=widths,
            orientation=page.orientation,
            scale=page.scale,
            fit_to_page=page.fit_to_page,
            margins=page.margins.model_dump(),
            autofilter=autofilter,
        )


def build_layout(items: Sequence[LineItem], config: WorkbookConfig) -> WorkbookLayout:
    """Deterministic (items, config) -> WorkbookLayout."""
    return WorkbookLayoutEngine(config).build(items)
