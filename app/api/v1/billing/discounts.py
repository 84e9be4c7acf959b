"""
Discounts and exemption for one person's month.

Compounding order is fixed: the sibling discount is already embedded in the stored
enrollment price, the attendance discount applies to that subtotal, and an exemption
zeroes the payable amount while the pre-exemption amount stays on the result.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from app.core.enums import PersonKind

from .schemas import (
    BillableDay,
    BillingPerson,
    ChildPerson,
    DayBreakdown,
    EnrollmentRecord,
    MonthlyFeeResult,
    PricingConfig,
)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")

SIBLING_DISCOUNT_MIN_ENROLLMENTS = 3
SIBLING_DISCOUNT_FIRST_POSITION = 3


def to_cents(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def _as_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def created_sort_key(created_at: Optional[datetime]) -> float:
    if created_at is None:
        return 0.0
    return created_at.timestamp()


def undiscounted_daily_price(enrollment: EnrollmentRecord) -> Decimal:
    """Stored daily price grossed up by the discount that was baked into it."""
    discount = _as_decimal(enrollment.discount_percent)
    price = _as_decimal(enrollment.daily_price)
    if discount <= 0 or discount >= HUNDRED:
        return price
    return price / (1 - discount / HUNDRED)


def enrollment_is_usable(enrollment: EnrollmentRecord) -> bool:
    """False for records that cannot match any day: no weekday in 0..6, end before start,
    or deactivated without an end date."""
    if not any(isinstance(d, int) and 0 <= d <= 6 for d in enrollment.weekdays):
        return False
    if enrollment.end_date is None:
        return enrollment.active
    return enrollment.end_date >= enrollment.start_date


def theoretical_monthly_cost(enrollment: EnrollmentRecord) -> Decimal:
    """Full-price cost of one enrolled week: undiscounted daily price x enrolled weekdays."""
    weekdays = {d for d in enrollment.weekdays if isinstance(d, int) and 0 <= d <= 6}
    return undiscounted_daily_price(enrollment) * len(weekdays)


# --- Sibling ranking ---
@dataclass(frozen=True)
class SiblingPosition:
    position: int
    household_enrollments: int
    discounted: bool


def _rank_key(enrollment: EnrollmentRecord):
    return (-theoretical_monthly_cost(enrollment), created_sort_key(enrollment.created_at), str(enrollment.id))


def _overlaps(enrollment: EnrollmentRecord, period: Tuple[date, date]) -> bool:
    first, last = period
    return enrollment.start_date <= last and (enrollment.end_date is None or enrollment.end_date >= first)


def sibling_rank(
    enrollments: Iterable[EnrollmentRecord],
    period: Optional[Tuple[date, date]] = None,
) -> Dict[UUID, SiblingPosition]:
    """
    Rank a household's children by theoretical full-price cost, highest first.
    Each child is ranked once, by its costliest active enrollment (earliest created on
    ties); when period is given only enrollments touching it count. The discount
    applies from the third position when at least three children are ranked.
    Stored prices are never altered here.
    """
    best: Dict[UUID, EnrollmentRecord] = {}
    for enrollment in enrollments:
        if not enrollment.active or enrollment.person_kind != PersonKind.CHILD:
            continue
        if not enrollment_is_usable(enrollment):
            continue
        if period is not None and not _overlaps(enrollment, period):
            continue
        current = best.get(enrollment.person_id)
        if current is None or _rank_key(enrollment) < _rank_key(current):
            best[enrollment.person_id] = enrollment

    ranked = sorted(best.values(), key=_rank_key)
    total = len(ranked)
    positions: Dict[UUID, SiblingPosition] = {}
    for position, enrollment in enumerate(ranked, start=1):
        positions[enrollment.person_id] = SiblingPosition(
            position=position,
            household_enrollments=total,
            discounted=total >= SIBLING_DISCOUNT_MIN_ENROLLMENTS and position >= SIBLING_DISCOUNT_FIRST_POSITION,
        )
    return positions


# --- Attendance ---
@dataclass(frozen=True)
class AttendanceDiscount:
    eligible: bool
    percent: Decimal
    required_days: int
    rate: int


def required_attendance_days(business_day_count: int, threshold_pct) -> int:
    """ceil(business days x threshold%). 23 days at 80% -> 19."""
    if business_day_count <= 0:
        return 0
    return math.ceil(Decimal(business_day_count) * _as_decimal(threshold_pct) / HUNDRED)


def attendance_rate(billable_day_count: int, business_day_count: int) -> int:
    if business_day_count <= 0:
        return 0
    rate = Decimal(billable_day_count) * HUNDRED / Decimal(business_day_count)
    return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def attendance_discount(billable_day_count: int, business_day_count: int, config: PricingConfig) -> AttendanceDiscount:
    """
    Hard cliff: below the required days there is no discount at all.

    The threshold is a share of all business days in the month, not of the days the
    person is enrolled for. Measuring against enrolled days was tried and reverted:
    a part-week enrollment reached the threshold with far fewer meals than a
    full-week one.
    """
    required = required_attendance_days(business_day_count, config.attendance_threshold_pct)
    eligible = billable_day_count > 0 and billable_day_count >= required
    return AttendanceDiscount(
        eligible=eligible,
        percent=_as_decimal(config.attendance_discount_pct) if eligible else Decimal("0"),
        required_days=required,
        rate=attendance_rate(billable_day_count, business_day_count),
    )


def apply_percent_discount(amount: Decimal, percent: Decimal) -> Decimal:
    return to_cents(amount * (HUNDRED - percent) / HUNDRED)


# --- Exemption ---
@dataclass(frozen=True)
class Exemption:
    exempt: bool
    reason: Optional[str] = None


def exemption(person: BillingPerson, check_day: date) -> Exemption:
    """
    Whole-month exemption decided on a single day: the first business day of the month.
    A window that only covers later days does not exempt the month. Either end may be open.
    """
    if not person.exempt:
        return Exemption(False)
    if person.exempt_from is not None and check_day < person.exempt_from:
        return Exemption(False)
    if person.exempt_to is not None and check_day > person.exempt_to:
        return Exemption(False)
    return Exemption(True, person.exempt_reason)


def exemption_check_day(business_days: Sequence[date], month_start: date) -> date:
    # Months without business days fall back to the first calendar day.
    return business_days[0] if business_days else month_start


# --- Settlement ---
def settle(
    person: BillingPerson,
    billable_days: List[BillableDay],
    breakdown: DayBreakdown,
    expected_days: int,
    business_days: Sequence[date],
    month_start: date,
    config: PricingConfig,
    sibling: Optional[SiblingPosition] = None,
) -> MonthlyFeeResult:
    """Turn accumulated days into the payable amount for one person."""
    subtotal = to_cents(sum((d.price for d in billable_days), Decimal("0")))
    base_amount = to_cents(sum((d.base_price for d in billable_days), Decimal("0")))

    attendance = attendance_discount(len(billable_days), len(business_days), config)
    amount = apply_percent_discount(subtotal, attendance.percent) if attendance.eligible else subtotal

    exempt = exemption(person, exemption_check_day(business_days, month_start))
    total = ZERO if exempt.exempt else amount

    is_child = isinstance(person, ChildPerson)
    sibling_discounted = bool(is_child and sibling is not None and sibling.discounted)

    return MonthlyFeeResult(
        person_id=person.id,
        person_kind=PersonKind(person.kind),
        name=person.name,
        billable_days=billable_days,
        breakdown=breakdown,
        total_days=len(billable_days),
        business_days=len(business_days),
        expected_days=expected_days,
        base_amount=base_amount,
        subtotal=subtotal,
        amount_before_exemption=amount,
        total_amount=total,
        savings=base_amount - total,
        is_staff_child=is_child and person.is_staff_child,
        sibling_discount=sibling_discounted,
        sibling_discount_percent=_as_decimal(config.sibling_discount_pct) if sibling_discounted else Decimal("0"),
        sibling_position=sibling.position if (is_child and sibling is not None) else None,
        household_enrollments=sibling.household_enrollments if (is_child and sibling is not None) else 0,
        attendance_discount=attendance.eligible,
        attendance_discount_percent=attendance.percent,
        attendance_rate=attendance.rate,
        required_attendance_days=attendance.required_days,
        exempt=exempt.exempt,
        exemption_reason=exempt.reason,
    )
