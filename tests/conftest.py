"""Pytest fixtures for labor settlement tests."""

from __future__ import annotations

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from helpers import TODAY, Seed
from labor_settlement.database import create_schema, create_session_factory
from labor_settlement.models import Company, CostCode, Project, Trade, Worker

# File-backed SQLite so that separate sessions see each other's commits.
# For full Postgres features, use a test Postgres database.
TEST_DATABASE_FILE = "labor_test.db"


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database for each test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / TEST_DATABASE_FILE}",
        echo=False,
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def today():
    """Clock pinned to TODAY."""
    return lambda: TODAY


@pytest_asyncio.fixture
async def seed(session: AsyncSession) -> Seed:
    """Create and commit companies, a trade, workers and projects."""
    payer = Company(name="Northside Builders")
    other_company = Company(name="Harbor Contracting")
    carpentry = Trade(name="Carpentry")
    session.add_all([payer, other_company, carpentry])
    await session.flush()

    framing = CostCode(code="06-100", name="Rough framing", trade_id=carpentry.trade_id)
    alice = Worker(
        name="Alice Moreno",
        hourly_rate=Decimal("20.00"),
        company_id=payer.company_id,
        trade_id=carpentry.trade_id,
    )
    bob = Worker(
        name="Bob Okafor",
        hourly_rate=Decimal("30.00"),
        company_id=payer.company_id,
    )
    project_a = Project(name="Elm Street Duplex", company_id=payer.company_id)
    project_b = Project(name="Riverside Clinic", company_id=payer.company_id)
    project_c = Project(name="Harbor Warehouse", company_id=other_company.company_id)
    session.add_all([framing, alice, bob, project_a, project_b, project_c])

    # Commit so that rollbacks inside a test keep the reference data.
    await session.commit()

    return Seed(
        payer_id=payer.company_id,
        other_company_id=other_company.company_id,
        carpentry_id=carpentry.trade_id,
        framing_id=framing.cost_code_id,
        alice_id=alice.worker_id,
        bob_id=bob.worker_id,
        project_a_id=project_a.project_id,
        project_b_id=project_b.project_id,
        project_c_id=project_c.project_id,
    )
