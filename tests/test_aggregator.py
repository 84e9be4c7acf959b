"""Household and institution aggregation over in-memory month inputs."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from app.api.v1.billing import aggregator
from app.api.v1.billing.aggregator import (
    BillingInputs,
    HouseholdMembers,
    aggregate_institution,
    bill_household,
    bill_institution,
)
from app.api.v1.billing.business_days import business_days


def _inputs(config, **feeds) -> BillingInputs:
    return BillingInputs(year=2025, month=12, config=config, business_days=tuple(business_days(2025, 12)), **feeds)


def test_household_bill_end_to_end(
    make_child, make_enrollment, make_cancellation, make_extra_request, pricing_config
) -> None:
    # December 2025 has 23 business days (not 22): 22 billable days against a 19-day threshold.
    guardian_id = uuid4()
    child = make_child("Lucia", guardian_id)
    inputs = _inputs(
        pricing_config,
        enrollments=(make_enrollment(child, start_date=date(2025, 12, 2)),),
        cancellations=(make_cancellation(child, ["09/12/2025"]),),
        extra_requests=(make_extra_request(child, "01/12/2025"),),
    )

    household = bill_household(HouseholdMembers(guardian_id, "Elena Ruiz", children=[child]), inputs)

    assert household.staff is None
    assert len(household.children) == 1
    assert household.total_days == 22
    assert household.total_amount == Decimal("108.24")
    assert household.total_base_amount == Decimal("132.00")
    assert household.total_savings == Decimal("23.76")
    assert household.exempt_amount == Decimal("0.00")


def test_staff_line_attached_when_billable(make_child, make_staff, make_enrollment, pricing_config) -> None:
    staff = make_staff("Marta")
    child = make_child("Pablo", staff.id, is_staff_child=True)
    inputs = _inputs(
        pricing_config,
        enrollments=(
            make_enrollment(child, daily_price="5.00"),
            make_enrollment(staff, weekdays=[2, 4], daily_price="7.50"),
        ),
    )

    household = bill_household(
        HouseholdMembers(staff.id, "Marta", is_staff=True, children=[child], staff=staff), inputs
    )

    assert household.staff is not None
    # Tuesdays and Thursdays: 9 days, below the attendance threshold.
    assert household.staff.total_amount == Decimal("67.50")
    assert household.children[0].is_staff_child is True
    assert household.children[0].total_amount == Decimal("94.30")
    assert household.total_amount == Decimal("161.80")


def test_staff_line_with_only_invitations_is_attached(make_staff, make_invitation, pricing_config) -> None:
    staff = make_staff()
    inputs = _inputs(pricing_config, invitations=(make_invitation(staff, date(2025, 12, 3)),))

    household = bill_household(HouseholdMembers(staff.id, staff.name, is_staff=True, staff=staff), inputs)

    assert household.staff is not None
    assert household.staff.breakdown.invited_days == 1
    assert household.total_amount == Decimal("0.00")


def test_staff_line_omitted_without_activity(make_child, make_staff, make_enrollment, pricing_config) -> None:
    staff = make_staff()
    child = make_child("Pablo", staff.id, is_staff_child=True)
    inputs = _inputs(pricing_config, enrollments=(make_enrollment(child),))

    household = bill_household(
        HouseholdMembers(staff.id, staff.name, is_staff=True, children=[child], staff=staff), inputs
    )

    assert household.staff is None
    assert household.total_amount == household.children[0].total_amount


def test_sibling_ranking_is_per_household(make_child, make_enrollment, pricing_config) -> None:
    family_a = uuid4()
    family_b = uuid4()
    a_children = [make_child(name, family_a) for name in ("Ana", "Bruno")]
    b_child = make_child("Carla", family_b)
    inputs = _inputs(
        pricing_config,
        enrollments=tuple(make_enrollment(c) for c in a_children + [b_child]),
    )

    household = bill_household(HouseholdMembers(family_a, "Family A", children=a_children), inputs)

    assert all(c.household_enrollments == 2 for c in household.children)
    assert all(c.sibling_discount is False for c in household.children)


def test_sequential_enrollments_do_not_create_a_third_sibling(make_child, make_enrollment, pricing_config) -> None:
    guardian_id = uuid4()
    ana = make_child("Ana", guardian_id)
    bruno = make_child("Bruno", guardian_id)
    inputs = _inputs(
        pricing_config,
        enrollments=(
            make_enrollment(ana, daily_price="6.00", end_date=date(2025, 12, 12)),
            make_enrollment(ana, daily_price="5.80", start_date=date(2025, 12, 15)),
            make_enrollment(bruno, daily_price="5.50"),
        ),
    )

    household = bill_household(HouseholdMembers(guardian_id, "Family", children=[ana, bruno]), inputs)

    assert [c.sibling_position for c in household.children] == [1, 2]
    assert all(c.household_enrollments == 2 for c in household.children)
    assert not any(c.sibling_discount for c in household.children)


def test_institution_lists_and_sorts_households(make_child, make_enrollment, pricing_config) -> None:
    small = HouseholdMembers(uuid4(), "Small", children=[])
    small.children.append(make_child("Ana", small.guardian_id))
    large = HouseholdMembers(uuid4(), "Large", children=[])
    large.children.append(make_child("Bruno", large.guardian_id))
    empty = HouseholdMembers(uuid4(), "Empty", children=[make_child("Carla")])
    exempt = HouseholdMembers(uuid4(), "Exempt", children=[])
    exempt.children.append(make_child("Dario", exempt.guardian_id, exempt=True))

    inputs = _inputs(
        pricing_config,
        enrollments=(
            make_enrollment(small.children[0], weekdays=[1]),
            make_enrollment(large.children[0]),
            make_enrollment(exempt.children[0]),
        ),
    )

    report = bill_institution([small, empty, large, exempt], inputs)

    assert report.month == "2025-12"
    assert report.business_days == 23
    assert [h.guardian_name for h in report.households] == ["Large", "Small", "Exempt"]
    assert report.household_count == 3
    assert report.total_amount == Decimal("143.16")
    assert report.exempt_amount == Decimal("113.16")
    assert report.total_days == 23 + 5 + 23

    everything = bill_institution([small, empty, large, exempt], inputs, include_empty=True)
    assert everything.household_count == 4
    assert [h.guardian_name for h in everything.households] == ["Large", "Small", "Empty", "Exempt"]


def test_institution_without_households(pricing_config) -> None:
    report = aggregate_institution("2025-12", 23, [])
    assert report.household_count == 0
    assert report.total_amount == Decimal("0.00")
    assert report.households == []


def test_failure_for_one_person_fails_the_report(make_child, make_enrollment, pricing_config, monkeypatch) -> None:
    household = HouseholdMembers(uuid4(), "Family", children=[])
    household.children.append(make_child("Ana", household.guardian_id))
    household.children.append(make_child("Bruno", household.guardian_id))
    inputs = _inputs(pricing_config, enrollments=tuple(make_enrollment(c) for c in household.children))

    real_accumulate = aggregator.accumulate

    def failing_accumulate(person, *args, **kwargs):
        if person.name == "Bruno":
            raise RuntimeError("calendar unavailable")
        return real_accumulate(person, *args, **kwargs)

    monkeypatch.setattr(aggregator, "accumulate", failing_accumulate)

    with pytest.raises(RuntimeError):
        bill_institution([household], inputs)
