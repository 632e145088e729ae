"""
BudgetWorkspace — everything one running service holds in memory: the budget
session, the export config and the exporter, plus the repository they are
persisted through.
"""
import logging
from typing import Optional

from pic_budget.models.workbook_config import WorkbookConfig, default_config
from pic_budget.services.budget_session import BudgetSession
from pic_budget.services.repository import Repository
from pic_budget.services.workbook_writer import WorkbookExporter

logger = logging.getLogger("pic-budget.workspace")


class BudgetWorkspace:

    def __init__(
        self,
        repository: Repository,
        session: Optional[BudgetSession] = None,
        config: Optional[WorkbookConfig] = None,
        exporter: Optional[WorkbookExporter] = None,
    ):
        self.repository = repository
        self.session = session or BudgetSession()
        self.config = config or default_config()
        self.exporter = exporter or WorkbookExporter()

    @classmethod
    async def open(cls, repository: Repository) -> "BudgetWorkspace":
        workspace = cls(repository)
        await workspace.reload()
        return workspace

    async def reload(self) -> None:
        """Re-read both stores from the repository (after a restore)."""
        snapshot = await self.repository.load()
        self.session = BudgetSession.from_snapshot(snapshot)
        flat = await self.repository.load_config()
        self.config = WorkbookConfig.from_flat(flat) if flat else default_config()
        logger.info(f"Workspace loaded: {len(self.session.items)} line items")

    async def persist(self) -> None:
        await self.repository.save(self.session.snapshot())

    async def persist_config(self) -> None:
        await self.repository.save_config(self.config.to_flat())
