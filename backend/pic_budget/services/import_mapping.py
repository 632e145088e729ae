"""
Bulk import mapping — turns arbitrary JSON rows into line item inputs.

A mapping names, for each local field, a dotted path into the source row
(``"precio.costo"``, ``"meta.unidad"``). Missing values take the import
defaults; values that are present but malformed (a non-numeric cost, a
negative quantity) are rejected here, at the boundary, with one
ImportValidationError listing every bad row.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from pic_budget import config as cfg
from pic_budget.exceptions import ImportValidationError
from pic_budget.models.line_item import LineItemInput
from pic_budget.services.perf_monitor import timed_async

logger = logging.getLogger("pic-budget.import")

# Local field -> LineItemInput alias
LOCAL_FIELDS: Dict[str, str] = {
    "producto": "producto",
    "cantidad": "cantidad",
    "presentacion": "presentacion",
    "categoria": "categoria",
    "valor_costo": "valorCosto",
    "margen": "margen",
    "impuestos": "impuestos",
    "costos_adicionales": "costosAdicionales",
}

_REQUIRED_STORE_FIELDS = (
    "id", "producto", "cantidad", "presentacion", "categoria", "valorCosto", "margen", "valorTotal",
)


class FieldMapping(BaseModel):
    """Where to find the row array and each local field inside the source JSON."""
    array_path: str = Field("", alias="arrayPath")
    fields: Dict[str, str] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


def get_value_by_path(obj: Any, path: str) -> Any:
    """Walk ``a.b.c`` through nested dicts; None when any step is missing."""
    if not path:
        return None
    current = obj
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None
    return current


def locate_rows(data: Any, array_path: str = "") -> List[Any]:
    """
    Find the row array: at ``array_path`` when given, else the payload itself
    when it is a list, else the first list-valued key.
    """
    if array_path:
        rows = get_value_by_path(data, array_path)
        if not isinstance(rows, list):
            raise ImportValidationError(f"Path '{array_path}' does not point to an array")
    elif isinstance(data, list):
        rows = data
    elif isinstance(data, dict):
        rows = next((v for v in data.values() if isinstance(v, list)), [])
    else:
        rows = []

    if not rows:
        raise ImportValidationError("No rows found in the import payload")
    return rows


def map_row(row: Any, fields: Dict[str, str]) -> Dict[str, Any]:
    """Project one source row onto the local fields, applying import defaults."""
    mapped: Dict[str, Any] = {}
    for local, alias in LOCAL_FIELDS.items():
        path = fields.get(local) or fields.get(alias) or ""
        value = get_value_by_path(row, path) if path else None
        if value is None and local in cfg.IMPORT_DEFAULTS:
            value = cfg.IMPORT_DEFAULTS[local]
        if value is not None:
            mapped[alias] = value
    mapped.setdefault("producto", "")
    return mapped


def describe_validation_error(err: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in err.errors()
    )


def map_rows(data: Any, mapping: Optional[FieldMapping] = None) -> List[LineItemInput]:
    """Map and validate every row; raises ImportValidationError listing all bad rows."""
    mapping = mapping or FieldMapping()
    rows = locate_rows(data, mapping.array_path)
    fields = mapping.fields or {alias: alias for alias in LOCAL_FIELDS.values()}

    inputs: List[LineItemInput] = []
    errors: List[str] = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            errors.append(f"Row {index}: not an object")
            continue
        try:
            inputs.append(LineItemInput.model_validate(map_row(row, fields)))
        except ValidationError as e:
            errors.append(f"Row {index}: {describe_validation_error(e)}")

    if errors:
        logger.warning(f"Import rejected: {len(errors)} of {len(rows)} rows invalid")
        raise ImportValidationError(f"{len(errors)} rows could not be imported", errors)
    logger.info(f"Import mapped {len(inputs)} rows")
    return inputs


@timed_async
async def fetch_rows(url: str, mapping: Optional[FieldMapping] = None, timeout: float = 10) -> List[LineItemInput]:
    """GET a JSON document and map its rows."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.get(url, headers={"Accept": "application/json"})
    if response.status_code != 200:
        raise ImportValidationError(f"Source returned HTTP {response.status_code}")
    try:
        data = response.json()
    except ValueError as e:
        raise ImportValidationError(f"Source did not return JSON: {e}") from e
    return map_rows(data, mapping)


def validate_products(rows: Sequence[Any]) -> List[str]:
    """
    Shape checks for a products file in the persisted format.

    Returns human-readable issues, empty when the file can be imported.
    """
    if not isinstance(rows, list):
        return ["The file must contain an array of products"]
    if not rows:
        return ["The file is empty"]

    issues: List[str] = []
    for index, product in enumerate(rows, start=1):
        if not isinstance(product, dict):
            issues.append(f"Product {index}: not a valid object")
            continue
        for name in _REQUIRED_STORE_FIELDS:
            if name not in product:
                issues.append(f'Product {index}: missing field "{name}"')

        qty = product.get("cantidad")
        if "cantidad" in product and (not _is_number(qty) or qty <= 0):
            issues.append(f"Product {index}: quantity must be a number greater than 0")
        cost = product.get("valorCosto")
        if "valorCosto" in product and (not _is_number(cost) or cost <= 0):
            issues.append(f"Product {index}: cost must be a number greater than 0")
        margin = product.get("margen")
        if "margen" in product and (not _is_number(margin) or margin < 0):
            issues.append(f"Product {index}: margin must be a number >= 0")
        category = product.get("categoria")
        if isinstance(category, str) and category not in cfg.KNOWN_CATEGORIES:
            issues.append(f"Product {index}: invalid category")
    return issues


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
