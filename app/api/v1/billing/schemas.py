"""Billing schemas: engine inputs (read-only feeds) and monthly fee results."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import DayCategory, PersonKind


# --- Engine inputs ---
class PricingConfig(BaseModel):
    """Active pricing record. Loaded once per billing request and never mutated."""

    base_price: Decimal
    staff_price: Decimal = Decimal("0")
    staff_child_price: Decimal = Decimal("0")
    sibling_discount_pct: Decimal = Decimal("0")
    attendance_discount_pct: Decimal = Decimal("18")
    attendance_threshold_pct: Decimal = Decimal("80")

    class Config:
        frozen = True


class PricingTier(BaseModel):
    days_min: int
    days_max: int
    price: Decimal


class EnrollmentRecord(BaseModel):
    """Standing weekly enrollment. weekdays: 0=Sunday .. 6=Saturday."""

    id: UUID
    person_kind: PersonKind
    person_id: UUID
    weekdays: List[int] = Field(default_factory=list)
    daily_price: Decimal
    discount_percent: Decimal = Decimal("0")
    active: bool = True
    start_date: date
    end_date: Optional[date] = None
    created_at: datetime


class CancellationRecord(BaseModel):
    id: UUID
    person_kind: PersonKind
    person_id: UUID
    dates: List[str] = Field(default_factory=list)


class ExtraDayRequestRecord(BaseModel):
    id: UUID
    person_kind: PersonKind
    person_id: UUID
    requested_date: str
    status: str


class InvitationRecord(BaseModel):
    id: UUID
    person_kind: PersonKind
    person_id: UUID
    date: date


# --- Persons ---
class BillingPerson(BaseModel):
    """Anyone with day-level cafeteria activity. Subclasses fix the kind."""

    id: UUID
    name: str
    exempt: bool = False
    exempt_reason: Optional[str] = None
    exempt_from: Optional[date] = None
    exempt_to: Optional[date] = None

    def owns(self, person_kind: PersonKind, person_id: Optional[UUID]) -> bool:
        """True if a record keyed by (kind, id) belongs to this person. Kinds never cross."""
        return person_id is not None and person_kind == self.kind and person_id == self.id


class ChildPerson(BillingPerson):
    kind: Literal["child"] = "child"
    household_id: UUID
    is_staff_child: bool = False


class StaffPerson(BillingPerson):
    kind: Literal["staff"] = "staff"


Person = Annotated[Union[ChildPerson, StaffPerson], Field(discriminator="kind")]


# --- Results ---
class BillableDay(BaseModel):
    day: date
    category: DayCategory
    price: Decimal
    base_price: Decimal
    description: str


class DayBreakdown(BaseModel):
    """Per-category day counts. enrollment_days includes enrolled holidays and enrolled invitations."""

    enrollment_days: int = 0
    extra_days: int = 0
    cancelled_days: int = 0
    holiday_days: int = 0
    invited_days: int = 0


class MonthlyFeeResult(BaseModel):
    person_id: UUID
    person_kind: PersonKind
    name: str
    billable_days: List[BillableDay]
    breakdown: DayBreakdown
    total_days: int
    business_days: int
    expected_days: int
    base_amount: Decimal
    subtotal: Decimal
    amount_before_exemption: Decimal
    total_amount: Decimal
    savings: Decimal
    is_staff_child: bool = False
    sibling_discount: bool = False
    sibling_discount_percent: Decimal = Decimal("0")
    sibling_position: Optional[int] = None
    household_enrollments: int = 0
    attendance_discount: bool = False
    attendance_discount_percent: Decimal = Decimal("0")
    attendance_rate: int = 0
    required_attendance_days: int = 0
    exempt: bool = False
    exemption_reason: Optional[str] = None


class HouseholdBilling(BaseModel):
    guardian_id: UUID
    guardian_name: str
    is_staff: bool
    children: List[MonthlyFeeResult]
    staff: Optional[MonthlyFeeResult] = None
    total_amount: Decimal
    total_days: int
    total_base_amount: Decimal
    total_savings: Decimal
    exempt_amount: Decimal


class InstitutionBilling(BaseModel):
    month: str
    business_days: int
    household_count: int
    households: List[HouseholdBilling]
    total_amount: Decimal
    total_days: int
    total_base_amount: Decimal
    total_savings: Decimal
    exempt_amount: Decimal


class BusinessDaysResponse(BaseModel):
    month: str
    days: List[date]
    count: int


class DailyPriceResponse(BaseModel):
    weekdays: int
    daily_price: Decimal
