"""
PIC Budget API
FastAPI backend for the PIC budgeting tool: line items, bulk price adjustments,
budget statistics and the .xlsx budget workbook, persisted in a local SQLite
key-value store.
"""
import time
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from pic_budget import config as cfg
from pic_budget.services.logging_config import setup_logging
from pic_budget.services.middleware import RequestTimingMiddleware
from pic_budget.services.perf_monitor import tracker as perf_tracker
from pic_budget.services.repository import Repository, SqlKeyValueRepository
from pic_budget.services.workspace import BudgetWorkspace

setup_logging(level=cfg.LOG_LEVEL, json_output=cfg.LOG_FORMAT.lower() != "text")
logger = logging.getLogger("pic-budget")

VERSION = "1.0.0"

_PROCESS_START = time.monotonic()


def create_app(repository: Optional[Repository] = None) -> FastAPI:
    """Build the app; without a repository the SQLite key-value store is used."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repo = repository
        if repo is None:
            from pic_budget.db import AsyncSessionLocal, init_db
            await init_db()
            repo = SqlKeyValueRepository(AsyncSessionLocal)
        app.state.workspace = await BudgetWorkspace.open(repo)
        logger.info(f"PIC Budget API started (store: {type(repo).__name__})")
        yield

    app = FastAPI(
        title="PIC Budget API",
        version=VERSION,
        description="Pricing, bulk adjustment and workbook export for PIC budgets",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)

    from pic_budget.api.product_routes import router as product_router
    from pic_budget.api.budget_routes import router as budget_router
    from pic_budget.api.export_routes import router as export_router
    from pic_budget.api.backup_routes import router as backup_router

    app.include_router(product_router)
    app.include_router(budget_router)
    app.include_router(export_router)
    app.include_router(backup_router)

    @app.get("/health")
    async def health_check():
        workspace = getattr(app.state, "workspace", None)
        return {
            "status": "active",
            "version": VERSION,
            "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
            "line_items": len(workspace.session.items) if workspace else 0,
            "export_in_progress": bool(workspace and workspace.exporter.is_generating),
            "exports": perf_tracker.get_metrics(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pic_budget.main:app", host="0.0.0.0", port=8000, reload=True)
