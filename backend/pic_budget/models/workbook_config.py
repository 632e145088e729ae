"""
Workbook export configuration.

The persisted record is one flat camelCase object (``fileName``,
``includeContract``, ``headerBgColor`` ...). Here it is split into independent
groups the layout engine composes:

  FileNaming    — base file name and date suffix
  PageSetup     — orientation, scale, fit-to-page, margins
  HeaderBlocks  — the five optional blocks above the table
  TableFeatures — formulas, totals, formats, filters, sizing
  StyleTheme    — colors and border style

``WorkbookConfig.from_flat`` / ``to_flat`` convert to and from the flat shape;
every group reads only its own keys from it.
"""
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pic_budget import config as cfg

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class _FlatGroup(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileNaming(_FlatGroup):
    file_name: str = cfg.DEFAULT_FILE_NAME
    include_date_in_file_name: bool = True


class PageMargins(_FlatGroup):
    left: float = Field(0.7, ge=0)
    right: float = Field(0.7, ge=0)
    top: float = Field(0.75, ge=0)
    bottom: float = Field(0.75, ge=0)
    header: float = Field(0.3, ge=0)
    footer: float = Field(0.3, ge=0)


class PageSetup(_FlatGroup):
    orientation: Literal["landscape", "portrait"] = "landscape"
    scale: int = Field(85, ge=10, le=400)
    fit_to_page: bool = True
    margins: PageMargins = Field(default_factory=PageMargins)


class HeaderBlocks(_FlatGroup):
    include_contract: bool = True
    contract_text: str = (
        "SUMINISTRO DE MATERIAL DE PAPELERIA, INSUMOS LOGISTICOS Y OTROS PARA LA "
        "EJECUCION DE LAS ACTIVIDADES DEL PLAN DE INTERVENCIONES COLECTIVAS (PIC)"
    )
    include_entity: bool = True
    entity_name: str = cfg.DEFAULT_ENTITY_NAME
    include_category: bool = True
    category_text: str = "MATERIAL DE PAPELERIA Y OTROS"
    include_date: bool = True
    document_date: Optional[date] = None
    include_responsible: bool = False
    responsible_name: str = ""
    center_headers: bool = True

    @field_validator("document_date", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            # Accept full ISO timestamps as well as plain dates
            return value[:10]
        return value


class TableFeatures(_FlatGroup):
    include_formulas: bool = True
    include_totals: bool = True
    currency_format: bool = True
    auto_filters: bool = True
    auto_column_width: bool = True
    max_column_width: int = Field(50, ge=1)
    auto_row_height: bool = True


_DEFAULT_THEME = cfg.STYLE_THEMES[cfg.DEFAULT_THEME_NAME]


class StyleTheme(_FlatGroup):
    header_bg_color: str = _DEFAULT_THEME["header_bg_color"]
    header_text_color: str = _DEFAULT_THEME["header_text_color"]
    odd_row_color: str = _DEFAULT_THEME["odd_row_color"]
    even_row_color: str = _DEFAULT_THEME["even_row_color"]
    border_color: str = _DEFAULT_THEME["border_color"]
    border_style: Literal["thin", "medium", "thick"] = "thin"
    total_row_bg_color: str = _DEFAULT_THEME["total_row_bg_color"]

    @field_validator(
        "header_bg_color", "header_text_color", "odd_row_color",
        "even_row_color", "border_color", "total_row_bg_color",
    )
    @classmethod
    def _hex_color(cls, value: str) -> str:
        if not _HEX_COLOR.match(value):
            raise ValueError(f"Color must be #RRGGBB, got {value!r}")
        return value.upper()


class WorkbookConfig(BaseModel):
    file: FileNaming = Field(default_factory=FileNaming)
    page: PageSetup = Field(default_factory=PageSetup)
    headers: HeaderBlocks = Field(default_factory=HeaderBlocks)
    table: TableFeatures = Field(default_factory=TableFeatures)
    style: StyleTheme = Field(default_factory=StyleTheme)
    last_updated: Optional[datetime] = None
    version: str = "1.0"

    @classmethod
    def from_flat(cls, flat: Dict[str, Any]) -> "WorkbookConfig":
        """Build from the persisted flat record; unknown keys are ignored."""
        flat = flat or {}
        return cls(
            file=FileNaming.model_validate(flat),
            page=PageSetup.model_validate(flat),
            headers=HeaderBlocks.model_validate(flat),
            table=TableFeatures.model_validate(flat),
            style=StyleTheme.model_validate(flat),
            last_updated=flat.get("lastUpdated"),
            version=str(flat.get("version", "1.0")),
        )

    def to_flat(self) -> Dict[str, Any]:
        flat: Dict[str, Any] = {}
        for group in (self.file, self.page, self.headers, self.table, self.style):
            flat.update(group.model_dump(mode="json", by_alias=True))
        flat["lastUpdated"] = self.last_updated.isoformat() if self.last_updated else None
        flat["version"] = self.version
        return flat

    def with_updates(self, updates: Dict[str, Any]) -> "WorkbookConfig":
        """Merge flat camelCase updates over this config and stamp ``last_updated``."""
        merged = {**self.to_flat(), **(updates or {})}
        merged["lastUpdated"] = datetime.now(timezone.utc).isoformat()
        return WorkbookConfig.from_flat(merged)


def default_config(today: Optional[date] = None) -> WorkbookConfig:
    """Default export config, dated today."""
    return WorkbookConfig(
        headers=HeaderBlocks(document_date=today or date.today()),
        last_updated=datetime.now(timezone.utc),
    )


def validate_config(config: WorkbookConfig) -> List[str]:
    """
    Boundary checks that pydantic field types cannot express.

    Returns a list of human-readable issues; empty means exportable.
    """
    issues: List[str] = []
    headers = config.headers

    if not config.file.file_name.strip():
        issues.append("File name is required")
    if headers.include_entity and not headers.entity_name.strip():
        issues.append("Entity block is enabled but the entity name is empty")
    if headers.include_contract and not headers.contract_text.strip():
        issues.append("Contract block is enabled but the contract text is empty")
    if headers.include_responsible and not headers.responsible_name.strip():
        issues.append("Responsible block is enabled but no name was given")
    if headers.include_date and headers.document_date is None:
        issues.append("Date block is enabled but no date was selected")
    if not 10 <= config.table.max_column_width <= 200:
        issues.append("Maximum column width must be between 10 and 200 characters")

    return issues


def apply_theme(config: WorkbookConfig, theme_name: str) -> WorkbookConfig:
    """Return a copy of ``config`` with a predefined color theme applied."""
    if theme_name not in cfg.STYLE_THEMES:
        raise KeyError(f"Unknown theme '{theme_name}'. Choose from {list(cfg.STYLE_THEMES)}")
    colors = cfg.STYLE_THEMES[theme_name]
    style = config.style.model_copy(update={k: v.upper() for k, v in colors.items()})
    return config.model_copy(update={"style": style})


class ExportSummary(BaseModel):
    """Pre-export overview shown next to the download button."""
    product_count: int
    includes_formulas: bool
    includes_colors: bool
    validation_issues: List[str] = Field(default_factory=list)
    configuration_score: int = 0          # 0..100
    estimated_file_size: str = ""
    features_enabled: List[str] = Field(default_factory=list)
    can_export: bool = False
    file_name: str = ""
    last_generated: Optional[datetime] = None
