"""Current hourly rate lookup for workers."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.errors import NotFoundError
from labor_settlement.models import Worker


class RateResolver:
    """Resolves a worker's hourly rate as of now.

    The rate is read at the moment a time record is created and baked into
    its labor_cost. Nothing reads it again for that record.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_hourly_rate(self, worker_id: UUID) -> Decimal:
        """Resolve the current hourly rate for a worker.

        Raises:
            NotFoundError: If the worker does not exist
        """
        rates = await self.resolve_hourly_rates([worker_id])
        return rates[worker_id]

    async def resolve_hourly_rates(self, worker_ids: Iterable[UUID]) -> dict[UUID, Decimal]:
        """Resolve current hourly rates for several workers in one query."""
        wanted = set(worker_ids)
        if not wanted:
            return {}

        result = await self.session.execute(
            select(Worker.worker_id, Worker.hourly_rate).where(Worker.worker_id.in_(wanted))
        )
        rates = {worker_id: rate for worker_id, rate in result.all()}

        missing = wanted.difference(rates)
        if missing:
            raise NotFoundError("Worker", sorted(missing, key=str)[0])
        return rates
