"""Medical expense persistence."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.core.errors import InvalidInputError, NotFoundError
from celiac_ledger.domain.models import (
    MedicalCategory,
    MedicalExpense,
    MedicalExpenseDraft,
    MedicalExpensePatch,
)
from celiac_ledger.ledger.aggregation import DateRange
from celiac_ledger.models import MedicalExpense as MedicalExpenseRow

_REQUIRED_FIELDS = ("description", "amount", "date", "category")


class MedicalExpenseRepository:
    """Medical expenses scoped to the owning user."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_medical_expenses(
        self, user_id: str, date_range: DateRange
    ) -> list[MedicalExpense]:
        """All of a user's medical expenses dated within the range."""
        result = await self._session.execute(
            select(MedicalExpenseRow)
            .where(
                MedicalExpenseRow.user_id == user_id,
                MedicalExpenseRow.date >= date_range.start,
                MedicalExpenseRow.date <= date_range.end,
            )
            .order_by(MedicalExpenseRow.date)
        )
        return [MedicalExpense.model_validate(row) for row in result.scalars().all()]

    async def list_for_user(
        self,
        user_id: str,
        *,
        category: MedicalCategory | None = None,
        date_range: DateRange | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[MedicalExpense], int]:
        """A page of expenses, most recent first, plus the total count."""
        filters = [MedicalExpenseRow.user_id == user_id]
        if category is not None:
            filters.append(MedicalExpenseRow.category == category)
        if date_range is not None:
            filters.append(MedicalExpenseRow.date >= date_range.start)
            filters.append(MedicalExpenseRow.date <= date_range.end)

        total_result = await self._session.execute(
            select(func.count()).select_from(MedicalExpenseRow).where(*filters)
        )
        total = int(total_result.scalar() or 0)

        result = await self._session.execute(
            select(MedicalExpenseRow)
            .where(*filters)
            .order_by(MedicalExpenseRow.date.desc(), MedicalExpenseRow.id)
            .limit(limit)
            .offset(offset)
        )
        expenses = [MedicalExpense.model_validate(row) for row in result.scalars().all()]
        return expenses, total

    async def _get_row(self, user_id: str, expense_id: str) -> MedicalExpenseRow:
        row = await self._session.get(MedicalExpenseRow, expense_id)
        if row is None or row.user_id != user_id:
            raise NotFoundError("Medical expense")
        return row

    async def get(self, user_id: str, expense_id: str) -> MedicalExpense:
        return MedicalExpense.model_validate(await self._get_row(user_id, expense_id))

    async def create(self, user_id: str, draft: MedicalExpenseDraft) -> MedicalExpense:
        row = MedicalExpenseRow(user_id=user_id, **draft.model_dump())
        self._session.add(row)
        await self._session.flush()
        return MedicalExpense.model_validate(row)

    async def update(
        self, user_id: str, expense_id: str, patch: MedicalExpensePatch
    ) -> MedicalExpense:
        row = await self._get_row(user_id, expense_id)
        updates = patch.model_dump(exclude_unset=True)
        for name in _REQUIRED_FIELDS:
            if name in updates and updates[name] is None:
                raise InvalidInputError(f"{name} cannot be cleared")

        for name, value in updates.items():
            setattr(row, name, value)
        await self._session.flush()
        return MedicalExpense.model_validate(row)

    async def delete(self, user_id: str, expense_id: str) -> None:
        row = await self._get_row(user_id, expense_id)
        await self._session.delete(row)
        await self._session.flush()
