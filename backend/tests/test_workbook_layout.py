"""
test_workbook_layout.py — Unit tests for the workbook layout engine.

Tests cover:
  - Header block placement, merging and the always-present spacers
  - Row-count invariant: n data rows, totals right after the last one
  - Alternating fills, number formats, margin stored as a fraction
  - Subtotal and totals formulas with cached values
  - Column widths, page settings and autofilter range
  - Height estimates and date formatting helpers

Rows are 0-based throughout (Excel row = row + 1).
"""

from datetime import date

import pytest

from pic_budget import config as cfg
from pic_budget.services.workbook_layout import (
    COL_MARGIN,
    COL_SUBTOTAL,
    ROW_DATA,
    ROW_HEADER_BLOCK,
    ROW_SPACER,
    ROW_TOTALS,
    build_layout,
    contract_row_height,
    data_row_height,
    excel_ref,
    format_document_date,
)


def _with_table(config, **changes):
    return config.model_copy(update={"table": config.table.model_copy(update=changes)})


def _with_headers(config, **changes):
    return config.model_copy(update={"headers": config.headers.model_copy(update=changes)})


# ===========================================================================
# Class 1: Header blocks
# ===========================================================================

class TestHeaderBlocks:

    def test_default_sequence(self, demo_items, export_config):
        """
        contract, spacer, entity, spacer, category, spacer, date, table spacer,
        table header at row 8.
        """
        layout = build_layout(demo_items, export_config)
        kinds = [r.kind for r in layout.rows[:9]]
        assert kinds == [
            ROW_HEADER_BLOCK, ROW_SPACER, ROW_HEADER_BLOCK, ROW_SPACER,
            ROW_HEADER_BLOCK, ROW_SPACER, ROW_HEADER_BLOCK, ROW_SPACER, "table_header",
        ]
        assert layout.table_header_row.row == 8
        assert layout.rows[0].cells[0].value.startswith("OBJETO: SUMINISTRO")
        assert layout.rows[2].cells[0].value == "E.S.E. HOSPITAL SAN RAFAEL"
        assert layout.rows[6].cells[0].value == "Fecha: 5/3/2025"

    def test_blocks_merge_across_all_columns(self, demo_items, export_config):
        layout = build_layout(demo_items, export_config)
        for row in layout.rows_of_kind(ROW_HEADER_BLOCK):
            assert (row.merge.first_col, row.merge.last_col) == (0, cfg.COLUMN_COUNT - 1)
            assert row.merge.first_row == row.merge.last_row == row.row

    def test_spacers_emitted_without_blocks(self, demo_items, bare_config):
        """Three 15-pt spacers and the 20-pt table spacer remain; table header lands on row 4."""
        layout = build_layout(demo_items, bare_config)
        heights = [r.height for r in layout.rows[:4]]
        assert [r.kind for r in layout.rows[:4]] == [ROW_SPACER] * 4
        assert heights == [15, 15, 15, 20]
        assert layout.table_header_row.row == 4

    def test_blank_entity_skipped(self, demo_items, export_config):
        layout = build_layout(demo_items, _with_headers(export_config, entity_name="   "))
        texts = [r.cells[0].value for r in layout.rows_of_kind(ROW_HEADER_BLOCK)]
        assert "   " not in texts
        assert len(texts) == 3

    def test_responsible_block(self, demo_items, export_config):
        config = _with_headers(export_config, include_responsible=True, responsible_name="Ana Gómez")
        layout = build_layout(demo_items, config)
        assert layout.rows[7].cells[0].value == "Responsable: Ana Gómez"
        assert layout.rows[7].height == cfg.DATE_ROW_HEIGHT

    def test_category_block_has_grey_fill(self, demo_items, export_config):
        layout = build_layout(demo_items, export_config)
        assert layout.rows[4].cells[0].style.bg_color == cfg.CATEGORY_BLOCK_FILL

    def test_left_aligned_when_not_centered(self, demo_items, export_config):
        layout = build_layout(demo_items, _with_headers(export_config, center_headers=False))
        assert all(r.cells[0].style.align == "left" for r in layout.rows_of_kind(ROW_HEADER_BLOCK))


# ===========================================================================
# Class 2: Table rows
# ===========================================================================

class TestTableRows:

    @pytest.mark.parametrize("count", [1, 2, 7])
    def test_row_count_invariant(self, item_factory, export_config, count):
        items = [item_factory(n) for n in range(1, count + 1)]
        layout = build_layout(items, export_config)
        data = layout.data_rows
        assert len(data) == count
        assert layout.totals_row.row == data[-1].row + 1
        assert layout.rows[-1].kind == ROW_TOTALS

    def test_no_totals_row_when_disabled(self, demo_items, export_config):
        layout = build_layout(demo_items, _with_table(export_config, include_totals=False))
        assert layout.totals_row is None
        assert layout.rows[-1].kind == ROW_DATA

    def test_table_header_titles(self, demo_items, export_config):
        layout = build_layout(demo_items, export_config)
        titles = [c.value for c in layout.table_header_row.cells]
        assert titles == cfg.TABLE_HEADERS
        assert layout.table_header_row.height == 35

    def test_alternating_fill(self, demo_items, export_config):
        layout = build_layout(demo_items, export_config)
        fills = [row.cells[0].style.bg_color for row in layout.data_rows]
        style = export_config.style
        assert fills == [style.odd_row_color, style.even_row_color, style.odd_row_color]

    def test_values_and_margin_fraction(self, demo_items, export_config):
        first = build_layout(demo_items, export_config).data_rows[0]
        values = [c.value for c in first.cells]
        assert values == [1, "Cuaderno A4", 10, "UNIDAD", 1500.0, 0.25, 1875.0, 18750.0]
        assert first.cells[COL_MARGIN].style.num_format == cfg.PERCENT_FORMAT

    def test_plain_numbers_without_currency_format(self, demo_items, export_config):
        first = build_layout(demo_items, _with_table(export_config, currency_format=False)).data_rows[0]
        assert first.cells[COL_MARGIN].value == 25.0
        assert all(c.style.num_format is None for c in first.cells)

    def test_subtotal_formula(self, demo_items, export_config):
        first = build_layout(demo_items, export_config).data_rows[0]
        assert first.row == 9
        assert first.cells[COL_SUBTOTAL].formula == "=G10*C10"
        assert first.cells[COL_SUBTOTAL].value == 18750.0

    def test_no_formulas_when_disabled(self, demo_items, export_config):
        layout = build_layout(demo_items, _with_table(export_config, include_formulas=False))
        assert all(c.formula is None for c in layout.cells())
        assert layout.totals_row.cells[COL_SUBTOTAL].value == 97_250.0

    def test_totals_row(self, demo_items, export_config):
        totals = build_layout(demo_items, export_config).totals_row
        assert totals.cells[1].value == "TOTALES"
        assert totals.cells[4].formula == "=SUMPRODUCT(E10:E12,C10:C12)"
        assert totals.cells[4].value == 80_000.0
        assert totals.cells[COL_SUBTOTAL].formula == "=SUM(H10:H12)"
        assert totals.height == 30
        border = totals.cells[0].style.border
        assert (border.top, border.bottom, border.left) == ("medium", "medium", "thin")

    def test_long_name_raises_row_height(self, item_factory, export_config):
        """100-char name → ceil(100/45) × 15 = 45."""
        items = [item_factory(1, name="x" * 100)]
        assert build_layout(items, export_config).data_rows[0].height == 45

    def test_fixed_height_without_auto_row_height(self, item_factory, export_config):
        items = [item_factory(1, name="x" * 100)]
        config = _with_table(export_config, auto_row_height=False)
        assert build_layout(items, config).data_rows[0].height == 25

    def test_deterministic(self, demo_items, export_config):
        assert build_layout(demo_items, export_config) == build_layout(demo_items, export_config)


# ===========================================================================
# Class 3: Sheet settings
# ===========================================================================

class TestSheetSettings:

    def test_autofilter_spans_header_to_totals(self, demo_items, export_config):
        settings = build_layout(demo_items, export_config).settings
        assert settings.autofilter == (8, 0, 12, 7)

    def test_autofilter_ends_at_last_data_row_without_totals(self, demo_items, export_config):
        config = _with_table(export_config, include_totals=False)
        assert build_layout(demo_items, config).settings.autofilter == (8, 0, 11, 7)

    def test_no_autofilter_when_disabled(self, demo_items, export_config):
        config = _with_table(export_config, auto_filters=False)
        assert build_layout(demo_items, config).settings.autofilter is None

    def test_column_widths_clamped(self, demo_items, export_config):
        config = _with_table(export_config, max_column_width=10)
        widths = build_layout(demo_items, config).settings.column_widths
        assert widths == [8, 10, 8, 10, 10, 10, 10, 10]

    def test_no_widths_without_auto_column_width(self, demo_items, export_config):
        config = _with_table(export_config, auto_column_width=False)
        assert build_layout(demo_items, config).settings.column_widths is None

    def test_page_setup(self, demo_items, export_config):
        settings = build_layout(demo_items, export_config).settings
        assert settings.orientation == "landscape"
        assert settings.scale == 85
        assert settings.fit_to_page is True
        assert settings.margins["top"] == 0.75


# ===========================================================================
# Class 4: Helpers
# ===========================================================================

class TestHelpers:

    @pytest.mark.parametrize("length,height", [(0, 40), (150, 40), (250, 60), (401, 100)])
    def test_contract_height(self, length, height):
        assert contract_row_height("x" * length) == height

    def test_data_row_height_from_presentation(self):
        """45-char presentation → ceil(45/20) × 15 = 45."""
        assert data_row_height("Lápiz", "y" * 45) == 45

    def test_document_date_unpadded(self):
        assert format_document_date(date(2025, 3, 5)) == "5/3/2025"
        assert format_document_date(date(2024, 12, 31)) == "31/12/2024"

    def test_excel_ref(self):
        assert excel_ref(0, 0) == "A1"
        assert excel_ref(9, 7) == "H10"
