"""
Decide which single category a calendar day falls into for one person.

Precedence, first match wins: invitation, cancellation, approved extra-day request,
enrollment, none. An enrollment covering the day is reported alongside the category
so invited days can still be tallied as enrolled.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import FrozenSet, Iterable, Optional, Set, Tuple

from app.core.enums import DayCategory, ExtraRequestStatus

from .business_days import stored_weekday
from .discounts import created_sort_key, enrollment_is_usable, undiscounted_daily_price
from .schemas import (
    BillingPerson,
    CancellationRecord,
    EnrollmentRecord,
    ExtraDayRequestRecord,
    InvitationRecord,
)

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d")


def parse_entitlement_date(raw) -> Optional[date]:
    """Parse a stored DD/MM/YYYY or ISO date. Anything else yields None."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def enrollment_in_range(enrollment: EnrollmentRecord, day: date) -> bool:
    """Calendar-date containment in [start, end], both ends inclusive; open end if none."""
    if enrollment.end_date is None and not enrollment.active:
        # Deactivated without an end date: cannot be placed in time.
        return False
    if day < enrollment.start_date:
        return False
    return enrollment.end_date is None or day <= enrollment.end_date


def enrollment_covers(enrollment: EnrollmentRecord, day: date) -> bool:
    return stored_weekday(day) in enrollment.weekdays and enrollment_in_range(enrollment, day)


def enrollment_order(enrollment: EnrollmentRecord) -> Tuple[date, float, str]:
    return (enrollment.start_date, created_sort_key(enrollment.created_at), str(enrollment.id))


@dataclass(frozen=True)
class DayMatch:
    category: DayCategory
    enrolled: bool = False
    enrollment: Optional[EnrollmentRecord] = None
    price: Decimal = Decimal("0")
    base_price: Decimal = Decimal("0")


@dataclass(frozen=True)
class PersonEntitlements:
    """A person's entitlement records for the month, already resolved to dates."""

    enrollments: Tuple[EnrollmentRecord, ...] = ()
    cancelled_days: FrozenSet[date] = frozenset()
    extra_days: FrozenSet[date] = frozenset()
    invited_days: FrozenSet[date] = frozenset()

    def covering_enrollment(self, day: date) -> Optional[EnrollmentRecord]:
        """First enrollment by ascending start date whose weekdays and range include the day."""
        for enrollment in self.enrollments:
            if enrollment_covers(enrollment, day):
                return enrollment
        return None

    def pricing_enrollment(self, day: date) -> Optional[EnrollmentRecord]:
        """Enrollment that prices an extra day: the one whose range holds the day, else the first one."""
        for enrollment in self.enrollments:
            if enrollment_in_range(enrollment, day):
                return enrollment
        return self.enrollments[0] if self.enrollments else None


def collect_entitlements(
    person: BillingPerson,
    enrollments: Iterable[EnrollmentRecord] = (),
    cancellations: Iterable[CancellationRecord] = (),
    extra_requests: Iterable[ExtraDayRequestRecord] = (),
    invitations: Iterable[InvitationRecord] = (),
) -> PersonEntitlements:
    """
    Select the records owned by person and resolve their dates. Unreadable dates and
    enrollments that cannot match any day are dropped, so they never price an extra day.
    """
    own_enrollments = sorted(
        (e for e in enrollments if person.owns(e.person_kind, e.person_id) and enrollment_is_usable(e)),
        key=enrollment_order,
    )

    cancelled: Set[date] = set()
    for cancellation in cancellations:
        if not person.owns(cancellation.person_kind, cancellation.person_id):
            continue
        for raw in cancellation.dates:
            parsed = parse_entitlement_date(raw)
            if parsed is None:
                logger.warning("Ignoring unreadable date %r in cancellation %s", raw, cancellation.id)
                continue
            cancelled.add(parsed)

    extra: Set[date] = set()
    for request in extra_requests:
        if not person.owns(request.person_kind, request.person_id):
            continue
        if request.status != ExtraRequestStatus.approved.value:
            continue
        parsed = parse_entitlement_date(request.requested_date)
        if parsed is None:
            logger.warning("Ignoring unreadable date %r in extra-day request %s", request.requested_date, request.id)
            continue
        extra.add(parsed)

    invited = {
        inv.date for inv in invitations if person.owns(inv.person_kind, inv.person_id)
    }

    return PersonEntitlements(
        enrollments=tuple(own_enrollments),
        cancelled_days=frozenset(cancelled),
        extra_days=frozenset(extra),
        invited_days=frozenset(invited),
    )


def classify(day: date, entitlements: PersonEntitlements) -> DayMatch:
    """Resolve one day to exactly one category."""
    covering = entitlements.covering_enrollment(day)
    enrolled = covering is not None

    if day in entitlements.invited_days:
        return DayMatch(DayCategory.INVITED, enrolled=enrolled)

    if day in entitlements.cancelled_days:
        return DayMatch(DayCategory.CANCELLED, enrolled=enrolled)

    if day in entitlements.extra_days:
        pricing = entitlements.pricing_enrollment(day)
        if pricing is None:
            return DayMatch(DayCategory.EXTRA, enrolled=enrolled)
        return DayMatch(
            DayCategory.EXTRA,
            enrolled=enrolled,
            enrollment=pricing,
            price=pricing.daily_price,
            base_price=undiscounted_daily_price(pricing),
        )

    if covering is not None:
        return DayMatch(
            DayCategory.ENROLLMENT,
            enrolled=True,
            enrollment=covering,
            price=covering.daily_price,
            base_price=undiscounted_daily_price(covering),
        )

    return DayMatch(DayCategory.NONE)
