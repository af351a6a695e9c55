"""Single data-access entry point used by the calculation core and the API."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.domain.models import (
    MedicalExpense,
    Receipt,
    ReceiptItemDraft,
    TaxProfile,
    TaxProfileFields,
)
from celiac_ledger.ledger.aggregation import DateRange
from celiac_ledger.repositories.medical import MedicalExpenseRepository
from celiac_ledger.repositories.products import ProductRepository
from celiac_ledger.repositories.receipts import ReceiptRepository
from celiac_ledger.repositories.tax_profiles import TaxProfileRepository


class LedgerRepository:
    """Bundles the per-entity repositories over one session.

    Implements the read interface the tax summary service consumes, plus the
    two writes with cross-row invariants (profile upsert, item replacement).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.products = ProductRepository(session)
        self.receipts = ReceiptRepository(session)
        self.medical = MedicalExpenseRepository(session)
        self.tax_profiles = TaxProfileRepository(session)

    async def find_receipts(self, user_id: str, date_range: DateRange) -> list[Receipt]:
        return await self.receipts.find_receipts(user_id, date_range)

    async def find_medical_expenses(
        self, user_id: str, date_range: DateRange
    ) -> list[MedicalExpense]:
        return await self.medical.find_medical_expenses(user_id, date_range)

    async def find_tax_profile(self, user_id: str, year: int) -> TaxProfile | None:
        return await self.tax_profiles.find_tax_profile(user_id, year)

    async def upsert_tax_profile(
        self, user_id: str, year: int, fields: TaxProfileFields
    ) -> TaxProfile:
        return await self.tax_profiles.upsert_tax_profile(user_id, year, fields)

    async def replace_receipt_items(
        self, receipt_id: str, items: Sequence[ReceiptItemDraft]
    ) -> Receipt:
        return await self.receipts.replace_receipt_items(receipt_id, items)
