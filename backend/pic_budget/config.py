"""
Budget configuration — single source of truth for pricing defaults, workbook
layout constants, style themes and environment overrides.

Import from here in services and routes rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Environment ────────────────────────────────────────────────────────────────
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./pic_budget.db")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")
DEFAULT_FILE_NAME: str = os.getenv("PIC_DEFAULT_FILE_NAME", "PRESUPUESTO_PIC")
DEFAULT_ENTITY_NAME: str = os.getenv("PIC_DEFAULT_ENTITY_NAME", "ESE HOSPITAL MUNICIPAL DE ALGECIRAS HUILA")

APP_NAME: str = "Sistema PIC Presupuestos"
BACKUP_VERSION: str = "2.0"


# ── Categories & margins ───────────────────────────────────────────────────────
# Category is an open string; these are the ones the UI offers.
KNOWN_CATEGORIES: list[str] = ["papeleria", "alimentos", "semillas", "aseo", "otros"]

# Fallback used by the per-category adjustment when a category has no entry
DEFAULT_CATEGORY_MARGIN: float = 20.0

DEFAULT_IVA_RATE: float = 19.0


# ── Import defaults ────────────────────────────────────────────────────────────
IMPORT_DEFAULTS: dict[str, object] = {
    "cantidad": 1,
    "presentacion": "UNIDAD",
    "categoria": "otros",
    "valor_costo": 0.0,
    "margen": 0.0,
}


# ── Persistence keys ───────────────────────────────────────────────────────────
STORE_KEY_PRODUCTS: str = "pic-product-store"
STORE_KEY_EXCEL_CONFIG: str = "excel-config-storage"

BACKUP_BUCKETS: dict[str, list[str]] = {
    "config": ["pic-excel-config", STORE_KEY_EXCEL_CONFIG],
    "products": [STORE_KEY_PRODUCTS, "pic-products-store", "pic_productos"],
    "ui": ["pic-ui-store", "theme-preference"],
    "other": [],
}


# ── Workbook layout ────────────────────────────────────────────────────────────
SHEET_NAME: str = "Presupuesto PIC"

TABLE_HEADER_MARKER: str = "ITEM"

TABLE_HEADERS: list[str] = [
    TABLE_HEADER_MARKER,
    "PRODUCTO",
    "CANT",
    "PRESENTACION",
    "Valor costo",
    "Margen %",
    "VALOR TOTAL",
    "SUBTOTAL",
]

# A..H
COLUMN_COUNT: int = len(TABLE_HEADERS)

BASE_COLUMN_WIDTHS: list[float] = [8, 45, 8, 20, 15, 12, 18, 18]

CURRENCY_FORMAT: str = '"$"#,##0.00'
PERCENT_FORMAT: str = "0.00%"

FONT_NAME: str = "Arial"
CATEGORY_BLOCK_FILL: str = "#E0E0E0"

# Row heights (points)
SPACER_ROW_HEIGHT: float = 15
TABLE_SPACER_ROW_HEIGHT: float = 20
ENTITY_ROW_HEIGHT: float = 25
DATE_ROW_HEIGHT: float = 20
TABLE_HEADER_ROW_HEIGHT: float = 35
DATA_ROW_HEIGHT: float = 25
TOTALS_ROW_HEIGHT: float = 30

TOTALS_LABEL: str = "TOTALES"

XLSX_MEDIA_TYPE: str = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ── Style themes ───────────────────────────────────────────────────────────────
STYLE_THEMES: dict[str, dict[str, str]] = {
    "Verde Corporativo": {
        "header_bg_color": "#4CAF50",
        "header_text_color": "#FFFFFF",
        "odd_row_color": "#F8F9FA",
        "even_row_color": "#FFFFFF",
        "border_color": "#DDDDDD",
        "total_row_bg_color": "#E8F5E8",
    },
    "Azul Profesional": {
        "header_bg_color": "#2196F3",
        "header_text_color": "#FFFFFF",
        "odd_row_color": "#F3F8FF",
        "even_row_color": "#FFFFFF",
        "border_color": "#E3F2FD",
        "total_row_bg_color": "#E3F2FD",
    },
    "Gris Elegante": {
        "header_bg_color": "#607D8B",
        "header_text_color": "#FFFFFF",
        "odd_row_color": "#F5F5F5",
        "even_row_color": "#FFFFFF",
        "border_color": "#EEEEEE",
        "total_row_bg_color": "#ECEFF1",
    },
    "Naranja Vibrante": {
        "header_bg_color": "#FF9800",
        "header_text_color": "#FFFFFF",
        "odd_row_color": "#FFF8F0",
        "even_row_color": "#FFFFFF",
        "border_color": "#FFE0B2",
        "total_row_bg_color": "#FFE0B2",
    },
    "Púrpura Moderno": {
        "header_bg_color": "#9C27B0",
        "header_text_color": "#FFFFFF",
        "odd_row_color": "#F8F5FF",
        "even_row_color": "#FFFFFF",
        "border_color": "#E1BEE7",
        "total_row_bg_color": "#F3E5F5",
    },
    "Verde Oscuro": {
        "header_bg_color": "#388E3C",
        "header_text_color": "#FFFFFF",
        "odd_row_color": "#F1F8E9",
        "even_row_color": "#FFFFFF",
        "border_color": "#C8E6C9",
        "total_row_bg_color": "#DCEDC8",
    },
}

DEFAULT_THEME_NAME: str = "Verde Corporativo"
