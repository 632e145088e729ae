"""
Budget Routes — aggregates and bulk adjustments over the live line items.

GET  /api/budget/summary     — item count, budget, cost, weighted margin
GET  /api/budget/statistics  — summary plus category split, price and margin spread
POST /api/budget/adjust      — proporcional | margen_fijo | por_categoria
POST /api/budget/restore     — bring back the pre-adjustment values
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from pic_budget.api.deps import get_workspace
from pic_budget.exceptions import AdjustmentError
from pic_budget.models.adjustment import parse_adjustment
from pic_budget.services.workspace import BudgetWorkspace

router = APIRouter(prefix="/api/budget", tags=["Budget"])
logger = logging.getLogger("pic-budget.api")


@router.get("/summary")
async def budget_summary(ws: BudgetWorkspace = Depends(get_workspace)):
    return ws.session.summary()


@router.get("/statistics")
async def budget_statistics(ws: BudgetWorkspace = Depends(get_workspace)):
    return ws.session.statistics()


@router.post("/adjust")
async def adjust_budget(
    payload: Dict[str, Any] = Body(...),
    ws: BudgetWorkspace = Depends(get_workspace),
):
    """
    Body is one adjustment method, e.g.
    ``{"type": "proporcional", "presupuestoObjetivo": 1200000}``.
    """
    try:
        method = parse_adjustment(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )
    try:
        result = ws.session.apply_adjustment(method)
    except AdjustmentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result.changed:
        await ws.persist()
    return result


@router.post("/restore")
async def restore_budget(ws: BudgetWorkspace = Depends(get_workspace)):
    restored = ws.session.restore_originals()
    if restored:
        await ws.persist()
    return {"restored": restored, "summary": ws.session.summary()}
