"""Tax summary, deduction estimate and tax profile endpoints."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.api.deps import get_current_user_id, get_db, get_tax_year
from celiac_ledger.core.config import settings
from celiac_ledger.core.errors import NotFoundError
from celiac_ledger.domain.models import MAX_MONEY, TaxProfile, TaxProfileFields
from celiac_ledger.ledger.summary import (
    DeductionEstimate,
    TaxSummary,
    TaxSummaryService,
)
from celiac_ledger.repositories import LedgerRepository

router = APIRouter(prefix="/api/tax", tags=["tax"])


class TaxProfileUpsertRequest(TaxProfileFields):
    """Tax profile fields for one year."""

    year: int


def _summary_service(db: AsyncSession) -> TaxSummaryService:
    return TaxSummaryService(LedgerRepository(db), settings.estimated_tax_rate)


@router.get("/summary", response_model=TaxSummary)
async def get_tax_summary(
    year: int = Depends(get_tax_year),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaxSummary:
    """Year totals and, when income is saved, the deductible amount."""
    return await _summary_service(db).compute_tax_summary(user_id, year)


@router.get("/deduction-estimate", response_model=DeductionEstimate)
async def get_deduction_estimate(
    year: int = Depends(get_tax_year),
    income: Decimal | None = Query(default=None, ge=0, le=MAX_MONEY),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> DeductionEstimate:
    """Estimate the deduction, using ``income`` in place of the saved profile."""
    return await _summary_service(db).compute_deduction_estimate(
        user_id, year, income_override=income
    )


@router.get("/profile/{year}", response_model=TaxProfile)
async def get_tax_profile(
    year: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaxProfile:
    profile = await LedgerRepository(db).find_tax_profile(user_id, year)
    if profile is None:
        raise NotFoundError("Tax profile")
    return profile


@router.put("/profile", response_model=TaxProfile)
async def upsert_tax_profile(
    payload: TaxProfileUpsertRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaxProfile:
    """Create or replace the profile for ``payload.year``."""
    fields = TaxProfileFields(**payload.model_dump(exclude={"year"}))
    return await LedgerRepository(db).upsert_tax_profile(user_id, payload.year, fields)
