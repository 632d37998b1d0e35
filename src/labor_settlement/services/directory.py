"""Read-only access to reference data: workers, projects, trades, cost codes."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.errors import NotFoundError
from labor_settlement.models import Company, CostCode, Project, Trade, Worker


class DirectoryService:
    """Lookups against the reference directories.

    The pipeline never creates or edits these rows; it only checks that the
    ids it is handed point at something.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_worker(self, worker_id: UUID) -> Worker:
        worker = await self.session.get(Worker, worker_id)
        if worker is None:
            raise NotFoundError("Worker", worker_id)
        return worker

    async def get_project(self, project_id: UUID) -> Project:
        project = await self.session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def get_company(self, company_id: UUID) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def require_references(
        self,
        worker_id: UUID | None = None,
        project_id: UUID | None = None,
        trade_id: UUID | None = None,
        cost_code_id: UUID | None = None,
    ) -> None:
        """Check that every given reference id exists."""
        if worker_id is not None:
            await self.get_worker(worker_id)
        if project_id is not None:
            await self.get_project(project_id)
        if trade_id is not None and await self.session.get(Trade, trade_id) is None:
            raise NotFoundError("Trade", trade_id)
        if cost_code_id is not None and await self.session.get(CostCode, cost_code_id) is None:
            raise NotFoundError("CostCode", cost_code_id)
