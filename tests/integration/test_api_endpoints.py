"""API endpoint integration tests.

Tests the FastAPI endpoints from scheduling through settlement.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

from helpers import TODAY, TOMORROW, YESTERDAY, Seed

pytestmark = pytest.mark.asyncio


async def create_schedule(client: AsyncClient, seed: Seed, day, hours="8", **extra) -> dict:
    response = await client.post(
        "/api/v1/schedules",
        json={
            "worker_id": str(seed.alice_id),
            "project_id": str(seed.project_a_id),
            "scheduled_date": day.isoformat(),
            "scheduled_hours": hours,
            **extra,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


async def log_time(client: AsyncClient, seed: Seed, day, hours="8", **extra) -> dict:
    response = await client.post(
        "/api/v1/time-records",
        json={
            "worker_id": str(seed.alice_id),
            "project_id": str(seed.project_a_id),
            "work_date": day.isoformat(),
            "hours_worked": hours,
            **extra,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_pay_run(client: AsyncClient, start, end, **extra) -> dict:
    payload = {"date_range_start": start.isoformat(), "date_range_end": end.isoformat()}
    payload.update(extra)
    response = await client.post("/api/v1/pay-runs", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200 with a healthy database."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["business_date"] == TODAY.isoformat()
        assert "checked_at" in data

    async def test_readiness_check(self, client: AsyncClient):
        """Readiness endpoint should return 200."""
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        """Liveness endpoint should return 200."""
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestScheduleEndpoints:
    """Test schedule CRUD endpoints."""

    async def test_create_and_list_for_day(self, client: AsyncClient, seed: Seed):
        """POST then GET ?day returns the entry."""
        created = await create_schedule(client, seed, TOMORROW, "7.5", notes="Deck framing")
        assert created["status"] == "planned"
        assert created["converted"] is False

        response = await client.get("/api/v1/schedules", params={"day": TOMORROW.isoformat()})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["schedule_id"] == created["schedule_id"]
        assert Decimal(data["items"][0]["scheduled_hours"]) == Decimal("7.5")

    async def test_list_requires_day_or_range(self, client: AsyncClient, seed: Seed):
        """Listing without a day or range is a 400."""
        response = await client.get("/api/v1/schedules")
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_grouped_day(self, client: AsyncClient, seed: Seed):
        """Entries are grouped per worker."""
        await create_schedule(client, seed, TODAY, "5")
        await create_schedule(client, seed, TODAY, "3", project_id=str(seed.project_b_id))

        response = await client.get("/api/v1/schedules/grouped", params={"day": TODAY.isoformat()})

        assert response.status_code == 200
        [group] = response.json()
        assert Decimal(group["total_hours"]) == Decimal("8")
        assert len(group["project_ids"]) == 2

    async def test_non_positive_hours(self, client: AsyncClient, seed: Seed):
        """Zero hours is a 400 from the service."""
        response = await client.post(
            "/api/v1/schedules",
            json={
                "worker_id": str(seed.alice_id),
                "project_id": str(seed.project_a_id),
                "scheduled_date": TOMORROW.isoformat(),
                "scheduled_hours": "0",
            },
        )
        assert response.status_code == 400

    async def test_missing_field_is_422(self, client: AsyncClient, seed: Seed):
        """Malformed bodies are rejected before reaching the service."""
        response = await client.post(
            "/api/v1/schedules",
            json={"worker_id": str(seed.alice_id), "scheduled_date": TOMORROW.isoformat()},
        )
        assert response.status_code == 422

    async def test_unknown_project_is_404(self, client: AsyncClient, seed: Seed):
        """References must exist."""
        response = await client.post(
            "/api/v1/schedules",
            json={
                "worker_id": str(seed.alice_id),
                "project_id": str(uuid4()),
                "scheduled_date": TOMORROW.isoformat(),
                "scheduled_hours": "8",
            },
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_locked_entry_returns_record_id(self, client: AsyncClient, seed: Seed):
        """Editing a past entry with a time record is a 409 pointing at the record."""
        entry = await create_schedule(client, seed, YESTERDAY)
        record = await log_time(client, seed, YESTERDAY, source_schedule_id=entry["schedule_id"])

        response = await client.patch(
            f"/api/v1/schedules/{entry['schedule_id']}",
            json={"scheduled_hours": "6"},
        )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "LOCKED"
        assert data["context"]["time_record_id"] == record["time_record_id"]

    async def test_update_future_entry(self, client: AsyncClient, seed: Seed):
        """Only the fields sent are changed."""
        entry = await create_schedule(client, seed, TOMORROW, notes="keep me")

        response = await client.patch(
            f"/api/v1/schedules/{entry['schedule_id']}",
            json={"scheduled_hours": "6"},
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["scheduled_hours"]) == Decimal("6")
        assert data["notes"] == "keep me"

    async def test_delete_entry(self, client: AsyncClient, seed: Seed):
        """DELETE removes the entry; a second DELETE is a 404."""
        entry = await create_schedule(client, seed, TOMORROW)

        response = await client.delete(f"/api/v1/schedules/{entry['schedule_id']}")
        assert response.status_code == 204

        response = await client.delete(f"/api/v1/schedules/{entry['schedule_id']}")
        assert response.status_code == 404


class TestSplitAndConvertEndpoints:
    """Test split and conversion endpoints."""

    async def test_split_entry(self, client: AsyncClient, seed: Seed):
        """8h split into 5h and 3h."""
        entry = await create_schedule(client, seed, TOMORROW)

        response = await client.post(
            "/api/v1/schedules/split",
            json={
                "schedule_id": entry["schedule_id"],
                "allocations": [
                    {"project_id": str(seed.project_a_id), "hours": "5"},
                    {"project_id": str(seed.project_b_id), "hours": "3"},
                ],
            },
        )

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["total"] == 2
        assert sorted(Decimal(e["scheduled_hours"]) for e in data["items"]) == [
            Decimal("3"),
            Decimal("5"),
        ]

    async def test_split_mismatch(self, client: AsyncClient, seed: Seed):
        """Allocations that do not add up are a 400 with both totals."""
        entry = await create_schedule(client, seed, TOMORROW)

        response = await client.post(
            "/api/v1/schedules/split",
            json={
                "schedule_id": entry["schedule_id"],
                "allocations": [
                    {"project_id": str(seed.project_a_id), "hours": "5"},
                    {"project_id": str(seed.project_b_id), "hours": "2"},
                ],
            },
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "ALLOCATION_MISMATCH"
        assert Decimal(data["context"]["expected"]) == Decimal("8")
        assert Decimal(data["context"]["actual"]) == Decimal("7")

    async def test_split_requires_allocations(self, client: AsyncClient, seed: Seed):
        """An empty allocation list fails request validation."""
        entry = await create_schedule(client, seed, TOMORROW)

        response = await client.post(
            "/api/v1/schedules/split",
            json={"schedule_id": entry["schedule_id"], "allocations": []},
        )
        assert response.status_code == 422

    async def test_convert(self, client: AsyncClient, seed: Seed):
        """Conversion returns costed, unpaid records."""
        entry = await create_schedule(client, seed, YESTERDAY)

        response = await client.post(
            "/api/v1/schedules/convert",
            json={"schedule_ids": [entry["schedule_id"]]},
        )

        assert response.status_code == 201, response.text
        [record] = response.json()["items"]
        assert Decimal(record["labor_cost"]) == Decimal("160")
        assert record["payment_status"] == "unpaid"
        assert record["source_schedule_id"] == entry["schedule_id"]

    async def test_convert_already_linked(self, client: AsyncClient, seed: Seed):
        """An entry logged early is a 409."""
        entry = await create_schedule(client, seed, TOMORROW)
        await log_time(client, seed, TOMORROW, source_schedule_id=entry["schedule_id"])

        response = await client.post(
            "/api/v1/schedules/convert",
            json={"schedule_ids": [entry["schedule_id"]]},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_CONVERTED"

    async def test_convert_due_uses_clock(self, client: AsyncClient, seed: Seed):
        """Without as_of, entries up to today are converted."""
        await create_schedule(client, seed, YESTERDAY)
        await create_schedule(client, seed, TODAY)
        await create_schedule(client, seed, TOMORROW)

        response = await client.post("/api/v1/schedules/convert-due", json={})

        assert response.status_code == 200
        assert response.json()["total"] == 2


class TestTimeRecordEndpoints:
    """Test time record endpoints."""

    async def test_create_get_update(self, client: AsyncClient, seed: Seed):
        """A record can be logged, read back and edited while unclaimed."""
        record = await log_time(client, seed, YESTERDAY, "8")
        assert Decimal(record["labor_cost"]) == Decimal("160")

        response = await client.get(f"/api/v1/time-records/{record['time_record_id']}")
        assert response.status_code == 200

        response = await client.patch(
            f"/api/v1/time-records/{record['time_record_id']}",
            json={"hours_worked": "4"},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["labor_cost"]) == Decimal("80")

    async def test_payment_fields_rejected(self, client: AsyncClient, seed: Seed):
        """payment_status is not part of the update schema."""
        record = await log_time(client, seed, YESTERDAY)

        response = await client.patch(
            f"/api/v1/time-records/{record['time_record_id']}",
            json={"payment_status": "paid"},
        )
        assert response.status_code == 422

    async def test_unpaid_listing_and_summary(self, client: AsyncClient, seed: Seed):
        """Unpaid records and their totals, filtered by paying company."""
        await log_time(client, seed, YESTERDAY, "8")
        await log_time(client, seed, YESTERDAY, "2", project_id=str(seed.project_c_id))

        response = await client.get(
            "/api/v1/time-records/unpaid", params={"company_id": str(seed.payer_id)}
        )
        assert response.status_code == 200
        assert response.json()["total"] == 1

        response = await client.get("/api/v1/time-records/unpaid/summary")
        assert response.status_code == 200
        summary = response.json()
        assert summary["total_records"] == 2
        assert Decimal(summary["total_amount"]) == Decimal("200")
        assert summary["workers_count"] == 1

    async def test_grouped(self, client: AsyncClient, seed: Seed):
        """Worker-day groups carry per-project splits."""
        await log_time(client, seed, YESTERDAY, "5")
        await log_time(client, seed, YESTERDAY, "3", project_id=str(seed.project_b_id))

        response = await client.get(
            "/api/v1/time-records/grouped",
            params={"start": YESTERDAY.isoformat(), "end": TODAY.isoformat()},
        )

        assert response.status_code == 200
        [group] = response.json()
        assert group["payment_status"] == "unpaid"
        assert group["can_split"] is False
        assert len(group["projects"]) == 2

    async def test_delete(self, client: AsyncClient, seed: Seed):
        """Unpaid records can be deleted."""
        record = await log_time(client, seed, YESTERDAY)

        response = await client.delete(f"/api/v1/time-records/{record['time_record_id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/time-records/{record['time_record_id']}")
        assert response.status_code == 404


class TestPayRunEndpoints:
    """Test pay run and settlement endpoints."""

    async def test_build_and_settle(self, client: AsyncClient, seed: Seed):
        """Draft, items, summary and settlement."""
        await log_time(client, seed, YESTERDAY, "8")
        await log_time(client, seed, TODAY, "2")

        pay_run = await create_pay_run(
            client, YESTERDAY, TODAY, select_all=True, payer_company_id=str(seed.payer_id)
        )
        assert pay_run["status"] == "draft"
        assert Decimal(pay_run["total_amount"]) == Decimal("200")
        pay_run_id = pay_run["pay_run_id"]

        response = await client.get(f"/api/v1/pay-runs/{pay_run_id}/items")
        assert response.json()["total"] == 2

        response = await client.get(f"/api/v1/pay-runs/{pay_run_id}/summary")
        assert response.json()["is_balanced"] is True

        response = await client.post(f"/api/v1/pay-runs/{pay_run_id}/mark-paid")
        assert response.status_code == 200, response.text
        paid = response.json()
        assert paid["status"] == "paid"
        assert paid["payment_date"] == TODAY.isoformat()

        response = await client.get("/api/v1/time-records/unpaid/summary")
        assert response.json()["total_records"] == 0

    async def test_explicit_selection_and_payment_date(self, client: AsyncClient, seed: Seed):
        """Only the chosen records are batched; the payment date can be set."""
        chosen = await log_time(client, seed, YESTERDAY, "8")
        await log_time(client, seed, YESTERDAY, "1")

        pay_run = await create_pay_run(
            client, YESTERDAY, YESTERDAY, time_record_ids=[chosen["time_record_id"]]
        )
        response = await client.post(
            f"/api/v1/pay-runs/{pay_run['pay_run_id']}/mark-paid",
            json={"payment_date": "2024-06-20"},
        )

        assert response.json()["payment_date"] == "2024-06-20"
        record = await client.get(f"/api/v1/time-records/{chosen['time_record_id']}")
        assert record.json()["payment_status"] == "paid"
        assert record.json()["payment_date"] == "2024-06-20"

    async def test_selection_required(self, client: AsyncClient, seed: Seed):
        """Neither ids nor select_all is a 422."""
        response = await client.post(
            "/api/v1/pay-runs",
            json={"date_range_start": YESTERDAY.isoformat(), "date_range_end": TODAY.isoformat()},
        )
        assert response.status_code == 422

    async def test_claimed_record_conflict(self, client: AsyncClient, seed: Seed):
        """A record already in a pay run cannot be batched again."""
        record = await log_time(client, seed, YESTERDAY)
        await create_pay_run(client, YESTERDAY, YESTERDAY, select_all=True)

        response = await client.post(
            "/api/v1/pay-runs",
            json={
                "date_range_start": YESTERDAY.isoformat(),
                "date_range_end": YESTERDAY.isoformat(),
                "time_record_ids": [record["time_record_id"]],
            },
        )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "ALREADY_CLAIMED"
        assert data["context"]["time_record_ids"] == [record["time_record_id"]]

    async def test_claimed_record_is_locked(self, client: AsyncClient, seed: Seed):
        """Editing a record held by a draft is a 409."""
        record = await log_time(client, seed, YESTERDAY)
        await create_pay_run(client, YESTERDAY, YESTERDAY, select_all=True)

        response = await client.patch(
            f"/api/v1/time-records/{record['time_record_id']}",
            json={"notes": "late edit"},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "LOCKED"

    async def test_settle_twice_conflict(self, client: AsyncClient, seed: Seed):
        """A second mark-paid is a 409."""
        await log_time(client, seed, YESTERDAY)
        pay_run = await create_pay_run(client, YESTERDAY, YESTERDAY, select_all=True)
        url = f"/api/v1/pay-runs/{pay_run['pay_run_id']}/mark-paid"

        assert (await client.post(url)).status_code == 200
        response = await client.post(url)

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_SETTLED"

    async def test_delete_draft_and_list(self, client: AsyncClient, seed: Seed):
        """Deleting a draft frees its records; status filters apply to listing."""
        await log_time(client, seed, YESTERDAY)
        pay_run = await create_pay_run(client, YESTERDAY, YESTERDAY, select_all=True)

        response = await client.get("/api/v1/pay-runs", params={"status": "draft"})
        assert response.json()["total"] == 1

        response = await client.delete(f"/api/v1/pay-runs/{pay_run['pay_run_id']}")
        assert response.status_code == 204

        response = await client.get("/api/v1/pay-runs")
        assert response.json()["total"] == 0
        response = await client.get("/api/v1/time-records/unpaid")
        assert response.json()["total"] == 1

    async def test_unknown_pay_run(self, client: AsyncClient, seed: Seed):
        """Unknown ids are a 404."""
        response = await client.get(f"/api/v1/pay-runs/{uuid4()}")
        assert response.status_code == 404

    async def test_bad_status_filter(self, client: AsyncClient, seed: Seed):
        """Unknown status filters are a 400."""
        response = await client.get("/api/v1/pay-runs", params={"status": "approved"})
        assert response.status_code == 400
