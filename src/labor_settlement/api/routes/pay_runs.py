"""Pay run endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from labor_settlement.api.dependencies import Clock, DbSession
from labor_settlement.api.schemas import (
    ErrorResponse,
    MarkPaidRequest,
    PayRunCreate,
    PayRunItemListResponse,
    PayRunItemResponse,
    PayRunListResponse,
    PayRunResponse,
    PayRunSummaryResponse,
)
from labor_settlement.services.pay_run_builder import PayRunBuilder, PayRunService
from labor_settlement.services.settlement_service import SettlementService

router = APIRouter(prefix="/pay-runs", tags=["pay-runs"])


# ============================================================================
# Pay Run CRUD
# ============================================================================


@router.post(
    "",
    response_model=PayRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_pay_run(
    db: DbSession,
    payload: PayRunCreate,
) -> PayRunResponse:
    """Build a draft pay run from unpaid time records in a date range."""
    builder = PayRunBuilder(db)
    builder.set_range(
        payload.date_range_start,
        payload.date_range_end,
        payer_company_id=payload.payer_company_id,
        payee_company_id=payload.payee_company_id,
    )
    await builder.fetch_candidates(worker_id=payload.worker_id, project_id=payload.project_id)
    if payload.select_all:
        builder.select_all()
    else:
        await builder.select(payload.time_record_ids)

    pay_run = await builder.build(created_by=payload.created_by)
    await db.commit()
    return PayRunResponse.model_validate(pay_run)


@router.get(
    "",
    response_model=PayRunListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_pay_runs(
    db: DbSession,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> PayRunListResponse:
    """List pay runs, newest first."""
    pay_runs = await PayRunService(db).list(status=status_filter)
    return PayRunListResponse(
        items=[PayRunResponse.model_validate(pr) for pr in pay_runs],
        total=len(pay_runs),
    )


@router.get(
    "/{pay_run_id}",
    response_model=PayRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_pay_run(
    db: DbSession,
    pay_run_id: Annotated[UUID, Path()],
) -> PayRunResponse:
    """Get a specific pay run by ID."""
    pay_run = await PayRunService(db).get(pay_run_id)
    return PayRunResponse.model_validate(pay_run)


@router.get(
    "/{pay_run_id}/items",
    response_model=PayRunItemListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_pay_run_items(
    db: DbSession,
    pay_run_id: Annotated[UUID, Path()],
) -> PayRunItemListResponse:
    """List the time records bound to a pay run."""
    items = await PayRunService(db).items(pay_run_id)
    return PayRunItemListResponse(
        items=[PayRunItemResponse.model_validate(i) for i in items],
        total=len(items),
    )


@router.get(
    "/{pay_run_id}/summary",
    response_model=PayRunSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_pay_run_summary(
    db: DbSession,
    pay_run_id: Annotated[UUID, Path()],
) -> PayRunSummaryResponse:
    """Counts and totals of a pay run, per worker."""
    summary = await PayRunService(db).summary(pay_run_id)
    return PayRunSummaryResponse.model_validate(summary)


# ============================================================================
# Settlement
# ============================================================================


@router.post(
    "/{pay_run_id}/mark-paid",
    response_model=PayRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_pay_run_paid(
    db: DbSession,
    clock: Clock,
    pay_run_id: Annotated[UUID, Path()],
    payload: MarkPaidRequest | None = None,
) -> PayRunResponse:
    """Settle a draft pay run and all of its time records."""
    service = SettlementService(db, today=clock)
    payment_date = payload.payment_date if payload is not None else None
    pay_run = await service.mark_paid(pay_run_id, payment_date=payment_date)
    await db.commit()
    return PayRunResponse.model_validate(pay_run)


@router.delete(
    "/{pay_run_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_pay_run(
    db: DbSession,
    clock: Clock,
    pay_run_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a draft pay run, releasing its time records."""
    await SettlementService(db, today=clock).delete(pay_run_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
