"""Receipts API endpoints."""

from fastapi import APIRouter, Depends, status
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
    Money,
    Receipt,
    ReceiptDraft,
    ReceiptItemDraft,
    ReceiptPatch,
)
from celiac_ledger.ledger.aggregation import DateRange
from celiac_ledger.ledger.incremental import recalculate_receipt_totals
from celiac_ledger.repositories import ReceiptRepository

router = APIRouter(prefix="/api/receipts", tags=["receipts"])


class ReceiptListResponse(LedgerModel):
    """Paginated receipt list response."""

    items: list[Receipt]
    total: int
    limit: int
    offset: int


class RecalculateRequest(LedgerModel):
    items: list[ReceiptItemDraft]


class ReceiptTotalsResponse(LedgerModel):
    total_amount: Money
    eligible_amount: Money


@router.get("", response_model=ReceiptListResponse)
async def list_receipts(
    date_range: DateRange | None = Depends(get_listing_range),
    page: Page = Depends(get_page),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ReceiptListResponse:
    """List receipts, most recent first, optionally for one year or month."""
    receipts, total = await ReceiptRepository(db).list_for_user(
        user_id, date_range=date_range, limit=page.limit, offset=page.offset
    )
    return ReceiptListResponse(
        items=receipts, total=total, limit=page.limit, offset=page.offset
    )


@router.post("", response_model=Receipt, status_code=status.HTTP_201_CREATED)
async def create_receipt(
    payload: ReceiptDraft,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Receipt:
    """Create a receipt; totals are recomputed whenever items are given."""
    return await ReceiptRepository(db).create(user_id, payload)


@router.post("/recalculate", response_model=ReceiptTotalsResponse)
async def recalculate_totals(
    payload: RecalculateRequest,
    user_id: str = Depends(get_current_user_id),
) -> ReceiptTotalsResponse:
    """Preview the totals for a list of items without saving anything."""
    totals = recalculate_receipt_totals(payload.items)
    return ReceiptTotalsResponse(
        total_amount=totals.total_amount,
        eligible_amount=totals.eligible_amount,
    )


@router.get("/{receipt_id}", response_model=Receipt)
async def get_receipt(
    receipt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Receipt:
    return await ReceiptRepository(db).get(user_id, receipt_id)


@router.put("/{receipt_id}", response_model=Receipt)
async def update_receipt(
    receipt_id: str,
    payload: ReceiptPatch,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Receipt:
    """Partially update a receipt; ``items`` replaces the whole item list."""
    return await ReceiptRepository(db).update(user_id, receipt_id, payload)


@router.delete("/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receipt(
    receipt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> None:
    await ReceiptRepository(db).delete(user_id, receipt_id)
