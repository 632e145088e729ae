"""
Workbook Writer — materializes a WorkbookLayout into .xlsx bytes.

The writer walks the placements in emission order: row heights, merged
header blocks, values/formulas with their cached results, then column widths,
page setup and autofilter. Formats are cached per distinct CellStyle.

Output is reproducible: xlsxwriter stamps zip members with a fixed date and
the document creation time is pinned, so the same layout yields the same bytes.

``WorkbookExporter`` is the fire-once entry point used by the API: one
export in flight at a time (a second request is rejected, never queued),
layout computed synchronously, serialization awaited in a worker thread, any
failure reported as a single WorkbookGenerationError.
"""
import io
import math
import time
import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, Optional, Sequence

import xlsxwriter

from pic_budget import config as cfg
from pic_budget.exceptions import (
    ExportInProgressError,
    ExportValidationError,
    WorkbookGenerationError,
)
from pic_budget.models.line_item import LineItem
from pic_budget.models.workbook_config import (
    ExportSummary,
    FileNaming,
    StyleTheme,
    WorkbookConfig,
    validate_config,
)
from pic_budget.services.perf_monitor import ExportTracker, timed
from pic_budget.services.perf_monitor import tracker as export_tracker
from pic_budget.services.workbook_layout import CellPlacement, CellStyle, WorkbookLayout, build_layout

logger = logging.getLogger("pic-budget.export")

# xlsxwriter border indexes
_BORDER_INDEX: Dict[str, int] = {"thin": 1, "medium": 2, "thick": 5}

_FALLBACK_CREATED = datetime(2000, 1, 1)


def build_filename(file_naming: FileNaming, today: Optional[date] = None) -> str:
    """``{base}[_{YYYY-MM-DD}].xlsx``; base falls back to the default name when blank."""
    base = file_naming.file_name.strip() or cfg.DEFAULT_FILE_NAME
    if file_naming.include_date_in_file_name:
        base += f"_{(today or date.today()).isoformat()}"
    return f"{base}.xlsx"


def _format_properties(style: CellStyle) -> Dict:
    props: Dict = {
        "font_name": style.font_name,
        "font_size": style.font_size,
        "align": style.align,
        "valign": style.valign,
    }
    if style.bold:
        props["bold"] = True
    if style.wrap:
        props["text_wrap"] = True
    if style.font_color:
        props["font_color"] = style.font_color
    if style.bg_color:
        props["pattern"] = 1
        props["bg_color"] = style.bg_color
    if style.num_format:
        props["num_format"] = style.num_format
    border = style.border
    if border is not None:
        for side in ("top", "left", "bottom", "right"):
            side_style = getattr(border, side)
            if side_style:
                props[side] = _BORDER_INDEX.get(side_style, 1)
                if border.color:
                    props[f"{side}_color"] = border.color
    return props


class _FormatCache:
    def __init__(self, workbook):
        self.workbook = workbook
        self._formats = {}

    def get(self, style: CellStyle):
        fmt = self._formats.get(style)
        if fmt is None:
            fmt = self.workbook.add_format(_format_properties(style))
            self._formats[style] = fmt
        return fmt


def _write_cell(ws, cell: CellPlacement, fmt) -> None:
    if cell.formula:
        ws.write_formula(cell.row, cell.col, cell.formula, fmt, cell.value)
    elif cell.value is None or cell.value == "":
        ws.write_blank(cell.row, cell.col, None, fmt)
    elif isinstance(cell.value, str):
        ws.write_string(cell.row, cell.col, cell.value, fmt)
    else:
        ws.write_number(cell.row, cell.col, cell.value, fmt)


@timed
def render_workbook(layout: WorkbookLayout, created: Optional[datetime] = None) -> bytes:
    """Serialize a layout to .xlsx bytes (single sheet)."""
    output = io.BytesIO()
    wb = xlsxwriter.Workbook(output, {"in_memory": True})
    wb.set_properties({
        "title": layout.sheet_name,
        "created": created or _FALLBACK_CREATED,
    })
    ws = wb.add_worksheet(layout.sheet_name)
    formats = _FormatCache(wb)

    for row in layout.rows:
        ws.set_row(row.row, row.height)
        if row.merge is not None and row.cells:
            head = row.cells[0]
            m = row.merge
            fmt = formats.get(head.style)
            ws.merge_range(m.first_row, m.first_col, m.last_row, m.last_col, "", fmt)
            _write_cell(ws, head, fmt)
            continue
        for cell in row.cells:
            _write_cell(ws, cell, formats.get(cell.style))

    settings = layout.settings
    if settings.column_widths:
        for col, width in enumerate(settings.column_widths):
            ws.set_column(col, col, width)

    if settings.orientation == "landscape":
        ws.set_landscape()
    else:
        ws.set_portrait()
    ws.set_print_scale(settings.scale)
    if settings.fit_to_page:
        ws.fit_to_pages(1, 0)
    margins = settings.margins
    ws.set_margins(
        left=margins["left"], right=margins["right"],
        top=margins["top"], bottom=margins["bottom"],
    )
    ws.set_header("", {"margin": margins["header"]})
    ws.set_footer("", {"margin": margins["footer"]})

    if settings.autofilter is not None:
        ws.autofilter(*settings.autofilter)

    wb.close()
    return output.getvalue()


@dataclass
class ExportResult:
    file_name: str
    content: bytes
    media_type: str = cfg.XLSX_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


class WorkbookExporter:
    """
    Owns the ``is_generating`` flag for one export session.

    The check-and-set happens before the first await, so on a single event
    loop two overlapping requests can never both pass it.
    """

    def __init__(self, tracker: Optional[ExportTracker] = None):
        self.tracker = tracker or export_tracker
        self.is_generating: bool = False
        self.last_generated: Optional[datetime] = None

    async def export(
        self,
        items: Sequence[LineItem],
        config: WorkbookConfig,
        today: Optional[date] = None,
    ) -> ExportResult:
        if self.is_generating:
            self.tracker.record_rejected()
            raise ExportInProgressError("A workbook export is already in progress")
        if not items:
            raise ExportValidationError("No line items to export")
        issues = validate_config(config)
        if issues:
            raise ExportValidationError("Workbook configuration is invalid", issues)

        self.is_generating = True
        start = time.perf_counter()
        try:
            today = today or date.today()
            layout = build_layout(list(items), config)
            doc_date = config.headers.document_date or today
            created = datetime(doc_date.year, doc_date.month, doc_date.day)
            content = await asyncio.to_thread(render_workbook, layout, created)
            file_name = build_filename(config.file, today)
        except Exception as e:
            self.tracker.record_failure()
            logger.error(f"Workbook generation failed: {e}")
            raise WorkbookGenerationError(f"Workbook generation failed: {e}") from e
        finally:
            self.is_generating = False

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        self.tracker.record_export(duration_ms)
        self.last_generated = datetime.now(timezone.utc)
        logger.info(
            f"Workbook generated: {file_name} ({len(items)} items, {len(content)} bytes)",
            extra={"duration_ms": duration_ms},
        )
        return ExportResult(file_name=file_name, content=content)


# ---------------------------------------------------------------------------
# Pre-export summary
# ---------------------------------------------------------------------------

_FEATURE_LABELS = (
    ("include_formulas", "Fórmulas automáticas"),
    ("include_totals", "Fila de totales"),
    ("currency_format", "Formato de moneda"),
    ("auto_filters", "Filtros automáticos"),
    ("auto_column_width", "Ajuste de columnas"),
    ("auto_row_height", "Ajuste de filas"),
)


def _estimated_size(product_count: int, feature_count: int) -> str:
    kb = 15 + product_count * 0.5 + feature_count * 2
    if kb < 1024:
        return f"{math.floor(kb + 0.5)} KB"
    return f"{kb / 1024:.1f} MB"


def export_summary(
    items: Sequence[LineItem],
    config: WorkbookConfig,
    exporter: Optional[WorkbookExporter] = None,
    today: Optional[date] = None,
) -> ExportSummary:
    headers, table, style = config.headers, config.table, config.style
    issues = validate_config(config)
    features = [label for attr, label in _FEATURE_LABELS if getattr(table, attr)]
    sections = sum([
        headers.include_contract,
        headers.include_entity,
        headers.include_category,
        headers.include_date,
        headers.include_responsible,
    ])
    defaults = StyleTheme()
    custom_colors = (
        style.header_bg_color != defaults.header_bg_color
        or style.odd_row_color != defaults.odd_row_color
        or style.total_row_bg_color != defaults.total_row_bg_color
    )
    score = sections / 5 * 40 + len(features) / 6 * 40 + (20 if custom_colors else 0)
    generating = exporter is not None and exporter.is_generating

    return ExportSummary(
        product_count=len(items),
        includes_formulas=table.include_formulas,
        includes_colors=custom_colors,
        validation_issues=issues,
        configuration_score=math.floor(score + 0.5),
        estimated_file_size=_estimated_size(len(items), len(features)),
        features_enabled=features,
        can_export=bool(items) and not issues and not generating,
        file_name=build_filename(config.file, today),
        last_generated=exporter.last_generated if exporter is not None else None,
    )
