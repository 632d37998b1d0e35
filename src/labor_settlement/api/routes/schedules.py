"""Schedule, split and conversion endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from labor_settlement.api.dependencies import Clock, DbSession
from labor_settlement.api.schemas import (
    ConvertDueRequest,
    ConvertRequest,
    ErrorResponse,
    ScheduleCreate,
    ScheduleDayGroupResponse,
    ScheduleListResponse,
    ScheduleResponse,
    ScheduleUpdate,
    SplitRequest,
    TimeRecordListResponse,
    TimeRecordResponse,
)
from labor_settlement.calculators.types import Allocation
from labor_settlement.errors import ValidationError
from labor_settlement.services.conversion_service import ConversionService
from labor_settlement.services.schedule_service import ScheduleService
from labor_settlement.services.split_service import SplitService

router = APIRouter(prefix="/schedules", tags=["schedules"])


# ============================================================================
# Schedule CRUD
# ============================================================================


@router.post(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_schedule(
    db: DbSession,
    clock: Clock,
    payload: ScheduleCreate,
) -> ScheduleResponse:
    """Schedule a worker on a project for a day."""
    service = ScheduleService(db, today=clock)
    entry = await service.create(**payload.model_dump())
    await db.commit()
    return ScheduleResponse.model_validate(entry)


@router.get(
    "",
    response_model=ScheduleListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_schedules(
    db: DbSession,
    clock: Clock,
    day: date | None = None,
    start: date | None = None,
    end: date | None = None,
    project_id: UUID | None = None,
    worker_id: UUID | None = None,
    company_id: UUID | None = None,
) -> ScheduleListResponse:
    """List entries for one day, or for a start/end range."""
    service = ScheduleService(db, today=clock)
    if day is not None:
        entries = await service.list_for_day(day, project_id, worker_id, company_id)
    elif start is not None and end is not None:
        entries = await service.list_range(start, end, project_id, worker_id, company_id)
    else:
        raise ValidationError("Give day, or start and end")

    return ScheduleListResponse(
        items=[ScheduleResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/grouped",
    response_model=list[ScheduleDayGroupResponse],
)
async def list_schedules_grouped(
    db: DbSession,
    clock: Clock,
    day: Annotated[date, Query()],
    project_id: UUID | None = None,
    company_id: UUID | None = None,
) -> list[ScheduleDayGroupResponse]:
    """Entries of one day grouped by worker."""
    service = ScheduleService(db, today=clock)
    entries = await service.list_for_day(day, project_id=project_id, company_id=company_id)
    return [
        ScheduleDayGroupResponse.model_validate(group)
        for group in service.group_by_worker(entries)
    ]


@router.patch(
    "/{schedule_id}",
    response_model=ScheduleResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_schedule(
    db: DbSession,
    clock: Clock,
    schedule_id: Annotated[UUID, Path()],
    payload: ScheduleUpdate,
) -> ScheduleResponse:
    """Edit an entry. Past entries with a time record are locked."""
    service = ScheduleService(db, today=clock)
    entry = await service.update(schedule_id, **payload.model_dump(exclude_unset=True))
    await db.commit()
    return ScheduleResponse.model_validate(entry)


@router.delete(
    "/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_schedule(
    db: DbSession,
    clock: Clock,
    schedule_id: Annotated[UUID, Path()],
    keep_time_record: bool = False,
) -> Response:
    """Delete an entry and its linked time record (or keep the record unlinked)."""
    service = ScheduleService(db, today=clock)
    await service.delete(schedule_id, keep_time_record=keep_time_record)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Split and conversion
# ============================================================================


@router.post(
    "/split",
    response_model=ScheduleListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def split_schedule(
    db: DbSession,
    clock: Clock,
    payload: SplitRequest,
) -> ScheduleListResponse:
    """Replace an entry, or a worker's day, with a new project allocation."""
    service = SplitService(db, today=clock)
    entries = await service.split(
        [Allocation(**line.model_dump()) for line in payload.allocations],
        schedule_id=payload.schedule_id,
        worker_id=payload.worker_id,
        day=payload.day,
        created_by=payload.created_by,
    )
    await db.commit()
    return ScheduleListResponse(
        items=[ScheduleResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.post(
    "/convert",
    response_model=TimeRecordListResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def convert_schedules(
    db: DbSession,
    clock: Clock,
    payload: ConvertRequest,
) -> TimeRecordListResponse:
    """Convert entries into costed, unpaid time records."""
    service = ConversionService(db, today=clock)
    records = await service.convert(payload.schedule_ids, created_by=payload.created_by)
    await db.commit()
    return TimeRecordListResponse(
        items=[TimeRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.post(
    "/convert-due",
    response_model=TimeRecordListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def convert_due_schedules(
    db: DbSession,
    clock: Clock,
    payload: ConvertDueRequest,
) -> TimeRecordListResponse:
    """Convert every entry dated on or before ``as_of``."""
    service = ConversionService(db, today=clock)
    records = await service.convert_due(as_of=payload.as_of, created_by=payload.created_by)
    await db.commit()
    return TimeRecordListResponse(
        items=[TimeRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )
