"""Walk every business day of a month for one person and collect billable days and counts."""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Sequence

from app.core.enums import DayCategory

from .matcher import PersonEntitlements, classify
from .schemas import BillableDay, BillingPerson, DayBreakdown, StaffPerson

ENROLLMENT_DESCRIPTION = "Enrollment meal"
EXTRA_DESCRIPTION = "Requested extra meal"
STAFF_SUFFIX = " (staff)"


@dataclass
class PersonDays:
    billable_days: List[BillableDay] = field(default_factory=list)
    breakdown: DayBreakdown = field(default_factory=DayBreakdown)
    expected_days: int = 0


def _description(person: BillingPerson, category: DayCategory) -> str:
    text = ENROLLMENT_DESCRIPTION if category == DayCategory.ENROLLMENT else EXTRA_DESCRIPTION
    if isinstance(person, StaffPerson):
        text += STAFF_SUFFIX
    return text


def count_enrolled_holidays(holidays: Iterable[date], entitlements: PersonEntitlements) -> int:
    """Holidays that fall on a day the person would otherwise have been enrolled for."""
    return sum(1 for day in sorted(set(holidays)) if entitlements.covering_enrollment(day) is not None)


def accumulate(
    person: BillingPerson,
    business_days: Sequence[date],
    holidays: Iterable[date],
    entitlements: PersonEntitlements,
) -> PersonDays:
    """
    Billable days are created only for enrollment and extra days. Invited days that
    coincide with an enrollment also count as enrollment days, as do enrolled holidays;
    neither is charged. expected_days is informational: business days covered by an
    enrollment regardless of what happened on them.
    """
    result = PersonDays()
    breakdown = result.breakdown

    enrolled_holidays = count_enrolled_holidays(holidays, entitlements)
    breakdown.holiday_days += enrolled_holidays
    breakdown.enrollment_days += enrolled_holidays

    for day in business_days:
        match = classify(day, entitlements)
        if match.enrolled:
            result.expected_days += 1

        if match.category == DayCategory.INVITED:
            breakdown.invited_days += 1
            if match.enrolled:
                breakdown.enrollment_days += 1
        elif match.category == DayCategory.CANCELLED:
            breakdown.cancelled_days += 1
        elif match.category == DayCategory.EXTRA:
            breakdown.extra_days += 1
            result.billable_days.append(
                BillableDay(
                    day=day,
                    category=DayCategory.EXTRA,
                    price=match.price,
                    base_price=match.base_price,
                    description=_description(person, DayCategory.EXTRA),
                )
            )
        elif match.category == DayCategory.ENROLLMENT:
            breakdown.enrollment_days += 1
            result.billable_days.append(
                BillableDay(
                    day=day,
                    category=DayCategory.ENROLLMENT,
                    price=match.price,
                    base_price=match.base_price,
                    description=_description(person, DayCategory.ENROLLMENT),
                )
            )

    return result
