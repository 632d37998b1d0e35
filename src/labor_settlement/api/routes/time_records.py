"""Time record endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from labor_settlement.api.dependencies import DbSession
from labor_settlement.api.schemas import (
    ErrorResponse,
    TimeRecordCreate,
    TimeRecordListResponse,
    TimeRecordResponse,
    TimeRecordUpdate,
    UnpaidSummaryResponse,
    WorkerDayGroupResponse,
)
from labor_settlement.services.time_record_service import TimeRecordService

router = APIRouter(prefix="/time-records", tags=["time-records"])


@router.post(
    "",
    response_model=TimeRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_time_record(
    db: DbSession,
    payload: TimeRecordCreate,
) -> TimeRecordResponse:
    """Log worked hours by hand."""
    service = TimeRecordService(db)
    record = await service.create(**payload.model_dump())
    await db.commit()
    return TimeRecordResponse.model_validate(record)


@router.get(
    "/unpaid",
    response_model=TimeRecordListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_unpaid_time_records(
    db: DbSession,
    start: date | None = None,
    end: date | None = None,
    company_id: UUID | None = None,
    worker_id: UUID | None = None,
    project_id: UUID | None = None,
    include_claimed: bool = False,
) -> TimeRecordListResponse:
    """Unpaid records available for a pay run."""
    service = TimeRecordService(db)
    records = await service.list_unpaid(
        start=start,
        end=end,
        company_id=company_id,
        worker_id=worker_id,
        project_id=project_id,
        include_claimed=include_claimed,
    )
    return TimeRecordListResponse(
        items=[TimeRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.get(
    "/unpaid/summary",
    response_model=UnpaidSummaryResponse,
    responses={400: {"model": ErrorResponse}},
)
async def unpaid_summary(
    db: DbSession,
    start: date | None = None,
    end: date | None = None,
    company_id: UUID | None = None,
) -> UnpaidSummaryResponse:
    """Count, hours and amount of unpaid labor."""
    service = TimeRecordService(db)
    summary = await service.unpaid_summary(start=start, end=end, company_id=company_id)
    return UnpaidSummaryResponse.model_validate(summary)


@router.get(
    "/grouped",
    response_model=list[WorkerDayGroupResponse],
    responses={400: {"model": ErrorResponse}},
)
async def list_time_records_grouped(
    db: DbSession,
    start: Annotated[date, Query()],
    end: Annotated[date, Query()],
    worker_id: UUID | None = None,
    project_id: UUID | None = None,
) -> list[WorkerDayGroupResponse]:
    """Records grouped by worker and day, with per-project splits."""
    service = TimeRecordService(db)
    groups = await service.grouped_by_worker_day(start, end, worker_id, project_id)
    return [WorkerDayGroupResponse.model_validate(g) for g in groups]


@router.get(
    "/{time_record_id}",
    response_model=TimeRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_time_record(
    db: DbSession,
    time_record_id: Annotated[UUID, Path()],
) -> TimeRecordResponse:
    """Get a specific time record by ID."""
    record = await TimeRecordService(db).get(time_record_id)
    return TimeRecordResponse.model_validate(record)


@router.patch(
    "/{time_record_id}",
    response_model=TimeRecordResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_time_record(
    db: DbSession,
    time_record_id: Annotated[UUID, Path()],
    payload: TimeRecordUpdate,
) -> TimeRecordResponse:
    """Edit an unpaid record that is not part of a pay run."""
    service = TimeRecordService(db)
    record = await service.update(time_record_id, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return TimeRecordResponse.model_validate(record)


@router.delete(
    "/{time_record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_time_record(
    db: DbSession,
    time_record_id: Annotated[UUID, Path()],
) -> Response:
    """Delete an unpaid record."""
    await TimeRecordService(db).delete(time_record_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
