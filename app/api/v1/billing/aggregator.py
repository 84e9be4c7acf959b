"""
Household and institution totals.

Every person is billed from the same month inputs; any failure while billing a
person propagates so no household is ever reported with a person silently missing.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from app.core.enums import PersonKind

from .accumulator import accumulate
from .business_days import format_month, month_bounds
from .discounts import SiblingPosition, settle, sibling_rank
from .matcher import collect_entitlements
from .schemas import (
    BillingPerson,
    CancellationRecord,
    ChildPerson,
    EnrollmentRecord,
    ExtraDayRequestRecord,
    HouseholdBilling,
    InstitutionBilling,
    InvitationRecord,
    MonthlyFeeResult,
    PricingConfig,
    StaffPerson,
)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class BillingInputs:
    """Everything read for one billing month. Complete before any matching starts."""

    year: int
    month: int
    config: PricingConfig
    business_days: Sequence[date]
    holidays: Sequence[date] = ()
    enrollments: Sequence[EnrollmentRecord] = ()
    cancellations: Sequence[CancellationRecord] = ()
    extra_requests: Sequence[ExtraDayRequestRecord] = ()
    invitations: Sequence[InvitationRecord] = ()

    @property
    def month_start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def label(self) -> str:
        return format_month(self.year, self.month)


@dataclass
class HouseholdMembers:
    guardian_id: UUID
    guardian_name: str
    is_staff: bool = False
    children: List[ChildPerson] = field(default_factory=list)
    staff: Optional[StaffPerson] = None


def bill_person(
    person: BillingPerson,
    inputs: BillingInputs,
    sibling: Optional[SiblingPosition] = None,
) -> MonthlyFeeResult:
    entitlements = collect_entitlements(
        person,
        inputs.enrollments,
        inputs.cancellations,
        inputs.extra_requests,
        inputs.invitations,
    )
    days = accumulate(person, inputs.business_days, inputs.holidays, entitlements)
    return settle(
        person,
        days.billable_days,
        days.breakdown,
        days.expected_days,
        inputs.business_days,
        inputs.month_start,
        inputs.config,
        sibling=sibling,
    )


def staff_entitlement_applies(result: MonthlyFeeResult) -> bool:
    """A staff guardian's own line is shown when it costs something or had invitations."""
    return result.amount_before_exemption > 0 or result.breakdown.invited_days > 0


def aggregate_household(
    guardian_id: UUID,
    guardian_name: str,
    is_staff: bool,
    children: List[MonthlyFeeResult],
    staff: Optional[MonthlyFeeResult] = None,
) -> HouseholdBilling:
    people = list(children) + ([staff] if staff is not None else [])
    return HouseholdBilling(
        guardian_id=guardian_id,
        guardian_name=guardian_name,
        is_staff=is_staff,
        children=children,
        staff=staff,
        total_amount=sum((p.total_amount for p in people), ZERO),
        total_days=sum(p.total_days for p in people),
        total_base_amount=sum((p.base_amount for p in people), ZERO),
        total_savings=sum((p.savings for p in people), ZERO),
        exempt_amount=sum((p.amount_before_exemption for p in people if p.exempt), ZERO),
    )


def bill_household(members: HouseholdMembers, inputs: BillingInputs) -> HouseholdBilling:
    child_ids = {child.id for child in members.children}
    ranking = sibling_rank(
        (e for e in inputs.enrollments if e.person_kind == PersonKind.CHILD and e.person_id in child_ids),
        period=month_bounds(inputs.year, inputs.month),
    )
    children = [bill_person(child, inputs, ranking.get(child.id)) for child in members.children]

    staff = None
    if members.is_staff and members.staff is not None:
        staff_result = bill_person(members.staff, inputs)
        if staff_entitlement_applies(staff_result):
            staff = staff_result

    return aggregate_household(
        members.guardian_id,
        members.guardian_name,
        members.is_staff,
        children,
        staff,
    )


def household_is_listed(household: HouseholdBilling) -> bool:
    return household.total_amount > 0 or household.exempt_amount > 0


def aggregate_institution(
    month: str,
    business_day_count: int,
    households: Iterable[HouseholdBilling],
    include_empty: bool = False,
) -> InstitutionBilling:
    """Reduce completed household results. Listed households sort by amount, highest first."""
    listed = [h for h in households if include_empty or household_is_listed(h)]
    listed.sort(key=lambda h: (-h.total_amount, h.guardian_name))
    return InstitutionBilling(
        month=month,
        business_days=business_day_count,
        household_count=len(listed),
        households=listed,
        total_amount=sum((h.total_amount for h in listed), ZERO),
        total_days=sum(h.total_days for h in listed),
        total_base_amount=sum((h.total_base_amount for h in listed), ZERO),
        total_savings=sum((h.total_savings for h in listed), ZERO),
        exempt_amount=sum((h.exempt_amount for h in listed), ZERO),
    )


def bill_institution(
    households: Iterable[HouseholdMembers],
    inputs: BillingInputs,
    include_empty: bool = False,
) -> InstitutionBilling:
    results = [bill_household(members, inputs) for members in households]
    return aggregate_institution(inputs.label, len(inputs.business_days), results, include_empty=include_empty)
