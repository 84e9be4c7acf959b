"""Billing router: business days, monthly institution report, household bill, tier price lookup."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import BusinessDaysResponse, DailyPriceResponse, HouseholdBilling, InstitutionBilling
from . import service

router = APIRouter(prefix="/api/v1/billing", tags=["billing"])

MONTH_DESCRIPTION = "Billing month as YYYY-MM"


@router.get("/business-days", response_model=BusinessDaysResponse)
async def get_business_days(
    month: str = Query(..., description=MONTH_DESCRIPTION),
    db: AsyncSession = Depends(get_db),
) -> BusinessDaysResponse:
    try:
        return await service.get_business_days(db, month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/monthly", response_model=InstitutionBilling)
async def get_monthly_billing(
    month: str = Query(..., description=MONTH_DESCRIPTION),
    include_empty: bool = Query(False, description="List households with nothing to bill"),
    db: AsyncSession = Depends(get_db),
) -> InstitutionBilling:
    try:
        return await service.calculate_monthly_billing(db, month, include_empty=include_empty)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/monthly/households/{guardian_id}", response_model=HouseholdBilling)
async def get_household_billing(
    guardian_id: UUID,
    month: str = Query(..., description=MONTH_DESCRIPTION),
    db: AsyncSession = Depends(get_db),
) -> HouseholdBilling:
    try:
        return await service.calculate_household_billing(db, month, guardian_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/pricing/daily-price", response_model=DailyPriceResponse)
async def get_daily_price(
    weekdays: int = Query(..., ge=0, le=5, description="Enrolled weekdays per week"),
    db: AsyncSession = Depends(get_db),
) -> DailyPriceResponse:
    try:
        price = await service.get_daily_price(db, weekdays)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return DailyPriceResponse(weekdays=weekdays, daily_price=price)
