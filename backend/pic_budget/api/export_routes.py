"""
Export Routes — workbook configuration and the .xlsx download.

GET  /api/export/config               — current config (flat camelCase record)
PUT  /api/export/config               — merge flat updates
POST /api/export/config/reset         — back to defaults
POST /api/export/config/theme/{name}  — apply a predefined color theme
GET  /api/export/themes               — theme names and colors
GET  /api/export/summary              — pre-export overview
POST /api/export/xlsx                 — generate and download the workbook
"""
import logging
from typing import Any, Dict
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import ValidationError

from pic_budget import config as cfg
from pic_budget.api.deps import get_workspace
from pic_budget.exceptions import (
    ExportInProgressError,
    ExportValidationError,
    WorkbookGenerationError,
)
from pic_budget.models.workbook_config import apply_theme, default_config, validate_config
from pic_budget.services.workbook_writer import export_summary
from pic_budget.services.workspace import BudgetWorkspace

router = APIRouter(prefix="/api/export", tags=["Export"])
logger = logging.getLogger("pic-budget.api")


def attachment_header(file_name: str) -> str:
    """
    RFC 6266 attachment header: an ASCII-only quoted fallback plus the exact
    name as RFC 5987 ``filename*`` so accents and quotes survive.
    """
    fallback = file_name.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "_").replace('"', "_")
    encoded = quote(file_name, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def _config_response(ws: BudgetWorkspace) -> Dict[str, Any]:
    return {"config": ws.config.to_flat(), "issues": validate_config(ws.config)}


@router.get("/config")
async def get_export_config(ws: BudgetWorkspace = Depends(get_workspace)):
    return _config_response(ws)


@router.put("/config")
async def update_export_config(
    updates: Dict[str, Any] = Body(...),
    ws: BudgetWorkspace = Depends(get_workspace),
):
    try:
        ws.config = ws.config.with_updates(updates)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )
    await ws.persist_config()
    return _config_response(ws)


@router.post("/config/reset")
async def reset_export_config(ws: BudgetWorkspace = Depends(get_workspace)):
    ws.config = default_config()
    await ws.persist_config()
    return _config_response(ws)


@router.get("/themes")
async def list_themes():
    return cfg.STYLE_THEMES


@router.post("/config/theme/{theme_name}")
async def set_export_theme(theme_name: str, ws: BudgetWorkspace = Depends(get_workspace)):
    try:
        ws.config = apply_theme(ws.config, theme_name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Theme '{theme_name}' not found")
    await ws.persist_config()
    return _config_response(ws)


@router.get("/summary")
async def get_export_summary(ws: BudgetWorkspace = Depends(get_workspace)):
    return export_summary(ws.session.items, ws.config, ws.exporter)


@router.post("/xlsx")
async def export_xlsx(ws: BudgetWorkspace = Depends(get_workspace)):
    try:
        result = await ws.exporter.export(ws.session.items, ws.config)
    except ExportInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ExportValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "issues": e.issues},
        )
    except WorkbookGenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": attachment_header(result.file_name)},
    )
