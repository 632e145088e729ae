"""
Backup Routes — whole-store backup and restore.

GET  /api/backup          — download every stored key, bucketed, with metadata
POST /api/backup/restore  — write a backup back and reload the workspace
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from pic_budget.api.deps import get_workspace
from pic_budget.exceptions import ImportValidationError
from pic_budget.models.backup import BackupDocument
from pic_budget.services.backup_service import backup_file_name, build_backup, restore_backup
from pic_budget.services.workspace import BudgetWorkspace

router = APIRouter(prefix="/api/backup", tags=["Backup"])
logger = logging.getLogger("pic-budget.api")


@router.get("")
async def download_backup(ws: BudgetWorkspace = Depends(get_workspace)):
    doc = await build_backup(ws.repository)
    return JSONResponse(
        content=doc.model_dump(mode="json", by_alias=True),
        headers={"Content-Disposition": f'attachment; filename="{backup_file_name()}"'},
    )


@router.post("/restore")
async def restore_from_backup(doc: BackupDocument, ws: BudgetWorkspace = Depends(get_workspace)):
    try:
        report = await restore_backup(ws.repository, doc)
    except ImportValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "errors": e.errors},
        )
    await ws.reload()
    return {
        "keys_restored": report.keys_restored,
        "items_restored": report.items_restored,
        "summary": ws.session.summary(),
    }
