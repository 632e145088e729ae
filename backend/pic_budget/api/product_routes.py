"""
Product Routes — line item CRUD, bulk load and import.

GET    /api/products               — list (optional ?search= & ?category=)
POST   /api/products               — create one
PUT    /api/products               — replace the whole collection
DELETE /api/products               — clear everything
POST   /api/products/bulk          — append several
POST   /api/products/import        — map arbitrary JSON rows (inline or fetched) and load them
POST   /api/products/validate      — shape-check a products file
POST   /api/products/demo          — load the demo items
GET    /api/products/{id}          — one item
PUT    /api/products/{id}          — partial update, total recomputed
DELETE /api/products/{id}          — delete one
"""
import logging
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field

from pic_budget.api.deps import get_workspace
from pic_budget.exceptions import ImportValidationError
from pic_budget.models.line_item import LineItemCreate, LineItemUpdate
from pic_budget.services.import_mapping import FieldMapping, fetch_rows, map_rows, validate_products
from pic_budget.services.workspace import BudgetWorkspace

router = APIRouter(prefix="/api/products", tags=["Products"])
logger = logging.getLogger("pic-budget.api")


class ImportRequest(BaseModel):
    data: Any = None
    url: Optional[str] = None
    mapping: FieldMapping = Field(default_factory=FieldMapping)
    mode: Literal["add", "replace"] = "add"


@router.get("")
async def list_products(
    search: str = "",
    category: str = "",
    ws: BudgetWorkspace = Depends(get_workspace),
):
    return [item.to_store() for item in ws.session.filter_items(search, category)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(data: LineItemCreate, ws: BudgetWorkspace = Depends(get_workspace)):
    item = ws.session.add_item(data)
    await ws.persist()
    return item.to_store()


@router.put("")
async def replace_products(rows: List[LineItemCreate], ws: BudgetWorkspace = Depends(get_workspace)):
    items = ws.session.replace_items(rows)
    await ws.persist()
    return [item.to_store() for item in items]


@router.delete("")
async def clear_products(ws: BudgetWorkspace = Depends(get_workspace)):
    ws.session.clear()
    await ws.persist()
    return {"cleared": True}


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def add_products_bulk(rows: List[LineItemCreate], ws: BudgetWorkspace = Depends(get_workspace)):
    items = ws.session.add_items_bulk(rows)
    await ws.persist()
    return [item.to_store() for item in items]


@router.post("/import")
async def import_products(body: ImportRequest, ws: BudgetWorkspace = Depends(get_workspace)):
    try:
        if body.url:
            rows = await fetch_rows(body.url, body.mapping)
        else:
            rows = map_rows(body.data, body.mapping)
    except ImportValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "errors": e.errors},
        )

    if body.mode == "replace":
        items = ws.session.replace_items(rows)
    else:
        items = ws.session.add_items_bulk(rows)
    await ws.persist()
    return {"mode": body.mode, "imported": len(items), "items": [i.to_store() for i in items]}


@router.post("/validate")
async def validate_products_file(rows: Any = Body(None)):
    issues = validate_products(rows)
    return {"valid": not issues, "issues": issues}


@router.post("/demo")
async def load_demo_products(ws: BudgetWorkspace = Depends(get_workspace)):
    items = ws.session.load_test_data()
    await ws.persist()
    return [item.to_store() for item in items]


@router.get("/{item_id}")
async def get_product(item_id: str, ws: BudgetWorkspace = Depends(get_workspace)):
    try:
        return ws.session.get_item(item_id).to_store()
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Product {item_id} not found")


@router.put("/{item_id}")
async def update_product(
    item_id: str,
    changes: LineItemUpdate,
    ws: BudgetWorkspace = Depends(get_workspace),
):
    try:
        item = ws.session.update_item(item_id, changes)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Product {item_id} not found")
    await ws.persist()
    return item.to_store()


@router.delete("/{item_id}")
async def delete_product(item_id: str, ws: BudgetWorkspace = Depends(get_workspace)):
    try:
        ws.session.delete_item(item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Product {item_id} not found")
    await ws.persist()
    return {"deleted": item_id}
