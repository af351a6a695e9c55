"""Medical expenses API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.api.deps import (
    Page,
    get_current_user_id,
    get_db,
    get_listing_range,
    get_page,
)
from celiac_ledger.domain.models import (
    LedgerModel,
    MedicalCategory,
    MedicalExpense,
    MedicalExpenseDraft,
    MedicalExpensePatch,
)
from celiac_ledger.ledger.aggregation import DateRange
from celiac_ledger.repositories import MedicalExpenseRepository

router = APIRouter(prefix="/api/medical", tags=["medical"])


class MedicalExpenseListResponse(LedgerModel):
    """Paginated medical expense list response."""

    items: list[MedicalExpense]
    total: int
    limit: int
    offset: int


@router.get("", response_model=MedicalExpenseListResponse)
async def list_medical_expenses(
    category: MedicalCategory | None = Query(default=None),
    date_range: DateRange | None = Depends(get_listing_range),
    page: Page = Depends(get_page),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MedicalExpenseListResponse:
    """List medical expenses with optional category and period filters."""
    expenses, total = await MedicalExpenseRepository(db).list_for_user(
        user_id,
        category=category,
        date_range=date_range,
        limit=page.limit,
        offset=page.offset,
    )
    return MedicalExpenseListResponse(
        items=expenses, total=total, limit=page.limit, offset=page.offset
    )


@router.post("", response_model=MedicalExpense, status_code=status.HTTP_201_CREATED)
async def create_medical_expense(
    payload: MedicalExpenseDraft,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MedicalExpense:
    return await MedicalExpenseRepository(db).create(user_id, payload)


@router.get("/{expense_id}", response_model=MedicalExpense)
async def get_medical_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MedicalExpense:
    return await MedicalExpenseRepository(db).get(user_id, expense_id)


@router.put("/{expense_id}", response_model=MedicalExpense)
async def update_medical_expense(
    expense_id: str,
    payload: MedicalExpensePatch,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MedicalExpense:
    return await MedicalExpenseRepository(db).update(user_id, expense_id, payload)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medical_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> None:
    await MedicalExpenseRepository(db).delete(user_id, expense_id)
