"""Billing service: load the month's read-only feeds, then run the pure billing pipeline."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PersonKind
from app.core.exceptions import DataFetchError, PricingConfigurationError, ServiceError
from app.core.models import (
    CafeteriaCancellation,
    CafeteriaEnrollment,
    CafeteriaInvitation,
    Child,
    ExtraDayRequest,
    Guardian,
    Holiday,
    PricingConfiguration,
)
from app.core.models.extra_day_request import EXTRA_REQUEST_STATUS_APPROVED

from .aggregator import BillingInputs, HouseholdMembers, bill_household, bill_institution
from .business_days import business_days, format_month, month_bounds, parse_month
from .schemas import (
    BusinessDaysResponse,
    CancellationRecord,
    ChildPerson,
    EnrollmentRecord,
    ExtraDayRequestRecord,
    HouseholdBilling,
    InstitutionBilling,
    InvitationRecord,
    PricingConfig,
    PricingTier,
    StaffPerson,
)

logger = logging.getLogger(__name__)

DEFAULT_SIBLING_DISCOUNT_PCT = Decimal("0")
DEFAULT_ATTENDANCE_DISCOUNT_PCT = Decimal("18")
DEFAULT_ATTENDANCE_THRESHOLD_PCT = Decimal("80")


def _to_decimal(val, default: Decimal = Decimal("0")) -> Decimal:
    if val is None:
        return default
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _person_ref(row) -> Optional[Tuple[PersonKind, UUID]]:
    """Child reference wins; a guardian reference means the staff entitlement."""
    if row.child_id is not None:
        return PersonKind.CHILD, row.child_id
    if row.guardian_id is not None:
        return PersonKind.STAFF, row.guardian_id
    return None


def _clean_weekdays(raw) -> List[int]:
    if not isinstance(raw, (list, tuple)):
        return []
    return sorted({d for d in raw if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6})


# --- Row conversion ---
def _enrollment_to_record(row: CafeteriaEnrollment) -> Optional[EnrollmentRecord]:
    ref = _person_ref(row)
    if ref is None:
        logger.warning("Skipping enrollment %s without child or guardian", row.id)
        return None
    return EnrollmentRecord(
        id=row.id,
        person_kind=ref[0],
        person_id=ref[1],
        weekdays=_clean_weekdays(row.weekdays),
        daily_price=_to_decimal(row.daily_price),
        discount_percent=_to_decimal(row.discount_percent),
        active=row.active,
        start_date=row.start_date,
        end_date=row.end_date,
        created_at=row.created_at,
    )


def _cancellation_to_record(row: CafeteriaCancellation) -> Optional[CancellationRecord]:
    ref = _person_ref(row)
    if ref is None:
        logger.warning("Skipping cancellation %s without child or guardian", row.id)
        return None
    dates = row.dates if isinstance(row.dates, list) else []
    return CancellationRecord(
        id=row.id,
        person_kind=ref[0],
        person_id=ref[1],
        dates=[d for d in dates if isinstance(d, str)],
    )


def _extra_request_to_record(row: ExtraDayRequest) -> Optional[ExtraDayRequestRecord]:
    ref = _person_ref(row)
    if ref is None:
        logger.warning("Skipping extra-day request %s without child or guardian", row.id)
        return None
    return ExtraDayRequestRecord(
        id=row.id,
        person_kind=ref[0],
        person_id=ref[1],
        requested_date=row.requested_date,
        status=row.status,
    )


def _invitation_to_record(row: CafeteriaInvitation) -> Optional[InvitationRecord]:
    ref = _person_ref(row)
    if ref is None:
        logger.warning("Skipping invitation %s without child or guardian", row.id)
        return None
    return InvitationRecord(id=row.id, person_kind=ref[0], person_id=ref[1], date=row.date)


def _records(rows, convert) -> list:
    return [r for r in (convert(row) for row in rows) if r is not None]


def _child_to_person(child: Child, guardian: Guardian) -> ChildPerson:
    return ChildPerson(
        id=child.id,
        name=child.name,
        household_id=guardian.id,
        is_staff_child=bool(guardian.is_staff),
        exempt=bool(child.exempt),
        exempt_reason=child.exempt_reason,
        exempt_from=child.exempt_from,
        exempt_to=child.exempt_to,
    )


def _guardian_to_staff(guardian: Guardian) -> StaffPerson:
    return StaffPerson(
        id=guardian.id,
        name=guardian.name,
        exempt=bool(guardian.exempt),
        exempt_reason=guardian.exempt_reason,
        exempt_from=guardian.exempt_from,
        exempt_to=guardian.exempt_to,
    )


# --- Pricing ---
def _config_to_value(row: PricingConfiguration) -> PricingConfig:
    return PricingConfig(
        base_price=_to_decimal(row.base_price),
        staff_price=_to_decimal(row.staff_price),
        staff_child_price=_to_decimal(row.staff_child_price),
        sibling_discount_pct=_to_decimal(row.sibling_discount_pct, DEFAULT_SIBLING_DISCOUNT_PCT),
        attendance_discount_pct=_to_decimal(row.attendance_discount_pct, DEFAULT_ATTENDANCE_DISCOUNT_PCT),
        attendance_threshold_pct=_to_decimal(row.attendance_threshold_pct, DEFAULT_ATTENDANCE_THRESHOLD_PCT),
    )


async def load_pricing_config(db: AsyncSession) -> PricingConfig:
    """Active configuration covering 1..5 days per week. Absence is fatal."""
    result = await db.execute(
        select(PricingConfiguration)
        .where(
            PricingConfiguration.active.is_(True),
            PricingConfiguration.days_min <= 1,
            PricingConfiguration.days_max >= 5,
        )
        .order_by(PricingConfiguration.created_at)
        .limit(1)
    )
    row = result.scalar_one_or_none()
    if row is None:
        logger.error("No active pricing configuration covering 1-5 days per week")
        raise PricingConfigurationError(
            "No active pricing configuration found. Configure prices before running billing."
        )
    return _config_to_value(row)


async def load_pricing_tiers(db: AsyncSession) -> List[PricingTier]:
    result = await db.execute(
        select(PricingConfiguration)
        .where(PricingConfiguration.active.is_(True))
        .order_by(PricingConfiguration.days_min)
    )
    return [
        PricingTier(days_min=row.days_min, days_max=row.days_max, price=_to_decimal(row.base_price))
        for row in result.scalars().all()
    ]


def price_for_weekday_count(tiers: Sequence[PricingTier], weekday_count: int) -> Decimal:
    """Daily price for an enrollment of weekday_count days per week."""
    if weekday_count <= 0:
        return Decimal("0")
    for tier in tiers:
        if tier.days_min <= weekday_count <= tier.days_max:
            return tier.price
    raise PricingConfigurationError(f"No pricing configuration found for {weekday_count} days per week")


async def get_daily_price(db: AsyncSession, weekday_count: int) -> Decimal:
    try:
        tiers = await load_pricing_tiers(db)
    except SQLAlchemyError as e:
        logger.error("Failed to load pricing tiers: %s", e)
        raise DataFetchError("Could not load pricing configuration") from e
    return price_for_weekday_count(tiers, weekday_count)


# --- Calendar ---
async def load_holidays(db: AsyncSession, year: int, month: int) -> List[date]:
    first, last = month_bounds(year, month)
    result = await db.execute(
        select(Holiday.date)
        .where(Holiday.active.is_(True), Holiday.date >= first, Holiday.date <= last)
        .order_by(Holiday.date)
    )
    return sorted(set(result.scalars().all()))


async def get_business_days(db: AsyncSession, month: str) -> BusinessDaysResponse:
    year, month_number = parse_month(month)
    try:
        holidays = await load_holidays(db, year, month_number)
    except SQLAlchemyError as e:
        logger.error("Failed to load holidays for %s: %s", month, e)
        raise DataFetchError("Could not load holidays") from e
    days = business_days(year, month_number, holidays)
    return BusinessDaysResponse(month=format_month(year, month_number), days=days, count=len(days))


# --- Month inputs ---
def _month_enrollment_filter(first: date, last: date):
    # Active and started by month end, or deactivated with an end date inside the month.
    return or_(
        and_(CafeteriaEnrollment.active.is_(True), CafeteriaEnrollment.start_date <= last),
        and_(
            CafeteriaEnrollment.active.is_(False),
            CafeteriaEnrollment.end_date.is_not(None),
            CafeteriaEnrollment.end_date >= first,
            CafeteriaEnrollment.end_date <= last,
        ),
    )


def _owned_by(model, child_ids: List[UUID], guardian_ids: List[UUID]):
    return or_(model.child_id.in_(child_ids), model.guardian_id.in_(guardian_ids))


async def _load_households(
    db: AsyncSession, guardian_id: Optional[UUID]
) -> List[HouseholdMembers]:
    stmt = select(Guardian).where(Guardian.active.is_(True))
    if guardian_id is not None:
        stmt = stmt.where(Guardian.id == guardian_id)
    guardians = (await db.execute(stmt.order_by(Guardian.name))).scalars().all()
    if not guardians:
        return []

    children = (
        await db.execute(
            select(Child)
            .where(Child.active.is_(True), Child.guardian_id.in_([g.id for g in guardians]))
            .order_by(Child.name)
        )
    ).scalars().all()

    households = []
    for guardian in guardians:
        households.append(
            HouseholdMembers(
                guardian_id=guardian.id,
                guardian_name=guardian.name,
                is_staff=bool(guardian.is_staff),
                children=[_child_to_person(c, guardian) for c in children if c.guardian_id == guardian.id],
                staff=_guardian_to_staff(guardian) if guardian.is_staff else None,
            )
        )
    return households


async def load_month_inputs(
    db: AsyncSession,
    year: int,
    month: int,
    guardian_id: Optional[UUID] = None,
) -> Tuple[List[HouseholdMembers], BillingInputs]:
    """
    Read every collection the month needs. All reads finish before any matching.
    Storage failures abort the whole request as DataFetchError.
    """
    first, last = month_bounds(year, month)
    try:
        config = await load_pricing_config(db)
        holidays = await load_holidays(db, year, month)
        households = await _load_households(db, guardian_id)

        child_ids = [c.id for h in households for c in h.children]
        guardian_ids = [h.guardian_id for h in households if h.is_staff]

        enrollments = (
            await db.execute(
                select(CafeteriaEnrollment).where(
                    _month_enrollment_filter(first, last),
                    _owned_by(CafeteriaEnrollment, child_ids, guardian_ids),
                )
            )
        ).scalars().all()
        cancellations = (
            await db.execute(
                select(CafeteriaCancellation)
                .where(_owned_by(CafeteriaCancellation, child_ids, guardian_ids))
                .order_by(CafeteriaCancellation.created_at)
            )
        ).scalars().all()
        extra_requests = (
            await db.execute(
                select(ExtraDayRequest)
                .where(
                    ExtraDayRequest.status == EXTRA_REQUEST_STATUS_APPROVED,
                    _owned_by(ExtraDayRequest, child_ids, guardian_ids),
                )
                .order_by(ExtraDayRequest.created_at)
            )
        ).scalars().all()
        invitations = (
            await db.execute(
                select(CafeteriaInvitation).where(
                    CafeteriaInvitation.date >= first,
                    CafeteriaInvitation.date <= last,
                    _owned_by(CafeteriaInvitation, child_ids, guardian_ids),
                )
            )
        ).scalars().all()
    except SQLAlchemyError as e:
        logger.error("Failed to load billing inputs for %s: %s", format_month(year, month), e)
        raise DataFetchError("Could not load billing data") from e

    inputs = BillingInputs(
        year=year,
        month=month,
        config=config,
        business_days=tuple(business_days(year, month, holidays)),
        holidays=tuple(holidays),
        enrollments=tuple(_records(enrollments, _enrollment_to_record)),
        cancellations=tuple(_records(cancellations, _cancellation_to_record)),
        extra_requests=tuple(_records(extra_requests, _extra_request_to_record)),
        invitations=tuple(_records(invitations, _invitation_to_record)),
    )
    return households, inputs


# --- Billing ---
async def calculate_monthly_billing(
    db: AsyncSession,
    month: str,
    include_empty: bool = False,
) -> InstitutionBilling:
    year, month_number = parse_month(month)
    logger.info("Calculating cafeteria billing for %s", format_month(year, month_number))
    households, inputs = await load_month_inputs(db, year, month_number)
    report = bill_institution(households, inputs, include_empty=include_empty)
    logger.info(
        "Billing for %s: %d households, total %s",
        report.month,
        report.household_count,
        report.total_amount,
    )
    return report


async def calculate_household_billing(
    db: AsyncSession,
    month: str,
    guardian_id: UUID,
) -> HouseholdBilling:
    year, month_number = parse_month(month)
    households, inputs = await load_month_inputs(db, year, month_number, guardian_id=guardian_id)
    if not households:
        raise ServiceError("Household not found", status.HTTP_404_NOT_FOUND)
    result = bill_household(households[0], inputs)
    logger.info(
        "Billing for household %s in %s: total %s",
        guardian_id,
        inputs.label,
        result.total_amount,
    )
    return result
