import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.v1.billing.schemas import (
    CancellationRecord,
    ChildPerson,
    EnrollmentRecord,
    ExtraDayRequestRecord,
    InvitationRecord,
    PricingConfig,
    StaffPerson,
)
from app.core import models  # noqa: F401  registers tables on Base.metadata
from app.core.enums import PersonKind
from app.db.session import Base, build_engine, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
MON_TO_FRI = (1, 2, 3, 4, 5)


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test, bound to the FastAPI dependency."""
    engine = build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# --- Engine input builders ---
@pytest.fixture()
def pricing_config() -> PricingConfig:
    return PricingConfig(
        base_price=Decimal("6.00"),
        staff_price=Decimal("7.50"),
        staff_child_price=Decimal("5.00"),
        sibling_discount_pct=Decimal("10"),
        attendance_discount_pct=Decimal("18"),
        attendance_threshold_pct=Decimal("80"),
    )


def _child(name: str = "Lucia", household_id=None, **kwargs) -> ChildPerson:
    return ChildPerson(id=kwargs.pop("id", uuid4()), name=name, household_id=household_id or uuid4(), **kwargs)


def _staff(name: str = "Marta", **kwargs) -> StaffPerson:
    return StaffPerson(id=kwargs.pop("id", uuid4()), name=name, **kwargs)


def _enrollment(
    person,
    weekdays=MON_TO_FRI,
    daily_price: str = "6.00",
    start_date: date = date(2025, 9, 1),
    end_date=None,
    active: bool = True,
    discount_percent: str = "0",
    created_at: datetime = datetime(2025, 8, 20, 9, 0),
) -> EnrollmentRecord:
    return EnrollmentRecord(
        id=uuid4(),
        person_kind=PersonKind(person.kind),
        person_id=person.id,
        weekdays=list(weekdays),
        daily_price=Decimal(daily_price),
        discount_percent=Decimal(discount_percent),
        active=active,
        start_date=start_date,
        end_date=end_date,
        created_at=created_at,
    )


def _cancellation(person, dates) -> CancellationRecord:
    return CancellationRecord(id=uuid4(), person_kind=PersonKind(person.kind), person_id=person.id, dates=list(dates))


def _extra_request(person, requested_date: str, status: str = "approved") -> ExtraDayRequestRecord:
    return ExtraDayRequestRecord(
        id=uuid4(),
        person_kind=PersonKind(person.kind),
        person_id=person.id,
        requested_date=requested_date,
        status=status,
    )


def _invitation(person, day: date) -> InvitationRecord:
    return InvitationRecord(id=uuid4(), person_kind=PersonKind(person.kind), person_id=person.id, date=day)


@pytest.fixture()
def make_child():
    return _child


@pytest.fixture()
def make_staff():
    return _staff


@pytest.fixture()
def make_enrollment():
    return _enrollment


@pytest.fixture()
def make_cancellation():
    return _cancellation


@pytest.fixture()
def make_extra_request():
    return _extra_request


@pytest.fixture()
def make_invitation():
    return _invitation
