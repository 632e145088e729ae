"""FastAPI dependency injection — the per-process budget workspace."""
from fastapi import HTTPException, Request, status

from pic_budget.services.workspace import BudgetWorkspace


def get_workspace(request: Request) -> BudgetWorkspace:
    workspace = getattr(request.app.state, "workspace", None)
    if workspace is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Budget workspace not initialised",
        )
    return workspace
