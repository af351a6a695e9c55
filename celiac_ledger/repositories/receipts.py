"""Receipt persistence.

Receipt totals are projections of the item list. Every write path
recomputes them before flushing; totals sent by a client are only used for
receipts without items.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from celiac_ledger.core.config import settings
from celiac_ledger.core.errors import InvalidInputError, NotFoundError
from celiac_ledger.core.logging import get_logger
from celiac_ledger.domain.models import (
    ZERO,
    Receipt,
    ReceiptDraft,
    ReceiptImage,
    ReceiptItemDraft,
    ReceiptPatch,
)
from celiac_ledger.ledger.aggregation import DateRange
from celiac_ledger.ledger.incremental import (
    LineAmounts,
    ReceiptTotals,
    calculate_item,
    recalculate_receipt_totals,
)
from celiac_ledger.models import Receipt as ReceiptRow
from celiac_ledger.models import ReceiptItem as ReceiptItemRow
from celiac_ledger.repositories.products import ProductRepository

logger = get_logger(__name__)

_HEADER_FIELDS = (
    "store_name",
    "receipt_date",
    "image_url",
    "image_file_name",
    "image_mime_type",
    "image_size",
)


def validate_image(image: ReceiptImage) -> None:
    """Check the stored image reference against upload limits.

    Raises:
        InvalidInputError: On a disallowed MIME type or an oversized file.
    """
    if image.image_mime_type and image.image_mime_type not in settings.allowed_image_types:
        raise InvalidInputError(
            f"Unsupported image type: {image.image_mime_type}. "
            f"Allowed: {', '.join(settings.allowed_image_types)}"
        )
    if image.image_size is not None and image.image_size > settings.max_image_bytes:
        raise InvalidInputError(
            f"Image is larger than the {settings.max_image_bytes} byte limit"
        )


def _as_draft(row: ReceiptItemRow) -> ReceiptItemDraft:
    return ReceiptItemDraft(
        name=row.name,
        unit_price=row.unit_price,
        quantity=row.quantity,
        is_eligible=row.is_eligible,
        purchased_product_id=row.purchased_product_id,
        comparison_product_id=row.comparison_product_id,
        comparison_unit_price=row.comparison_unit_price,
    )


class ReceiptRepository:
    """Receipts and their items, scoped to the owning user."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._products = ProductRepository(session)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_receipts(self, user_id: str, date_range: DateRange) -> list[Receipt]:
        """All of a user's receipts dated within the range, with items."""
        result = await self._session.execute(
            select(ReceiptRow)
            .options(selectinload(ReceiptRow.items))
            .where(
                ReceiptRow.user_id == user_id,
                ReceiptRow.receipt_date >= date_range.start,
                ReceiptRow.receipt_date <= date_range.end,
            )
            .order_by(ReceiptRow.receipt_date)
        )
        return [Receipt.model_validate(row) for row in result.scalars().all()]

    async def list_for_user(
        self,
        user_id: str,
        *,
        date_range: DateRange | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Receipt], int]:
        """A page of receipts, most recent first, plus the total count."""
        filters = [ReceiptRow.user_id == user_id]
        if date_range is not None:
            filters.append(ReceiptRow.receipt_date >= date_range.start)
            filters.append(ReceiptRow.receipt_date <= date_range.end)

        total_result = await self._session.execute(
            select(func.count()).select_from(ReceiptRow).where(*filters)
        )
        total = int(total_result.scalar() or 0)

        result = await self._session.execute(
            select(ReceiptRow)
            .options(selectinload(ReceiptRow.items))
            .where(*filters)
            .order_by(ReceiptRow.receipt_date.desc(), ReceiptRow.id)
            .limit(limit)
            .offset(offset)
        )
        return [Receipt.model_validate(row) for row in result.scalars().all()], total

    async def _get_row(
        self, receipt_id: str, user_id: str | None = None, *, with_items: bool = True
    ) -> ReceiptRow:
        stmt = (
            select(ReceiptRow)
            .where(ReceiptRow.id == receipt_id)
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            stmt = stmt.where(ReceiptRow.user_id == user_id)
        if with_items:
            stmt = stmt.options(selectinload(ReceiptRow.items))
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("Receipt")
        return row

    async def get(self, user_id: str, receipt_id: str) -> Receipt:
        return Receipt.model_validate(await self._get_row(receipt_id, user_id))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _check_product_refs(
        self, user_id: str, items: Sequence[ReceiptItemDraft]
    ) -> None:
        refs = {
            ref
            for item in items
            for ref in (item.purchased_product_id, item.comparison_product_id)
            if ref
        }
        for product_id in refs:
            await self._products.get_visible(user_id, product_id)

    @staticmethod
    def _build_rows(
        receipt_id: str, lines: Sequence[tuple[ReceiptItemDraft, LineAmounts]]
    ) -> list[ReceiptItemRow]:
        return [
            ReceiptItemRow(
                receipt_id=receipt_id,
                position=position,
                name=draft.name,
                unit_price=draft.unit_price,
                quantity=draft.quantity,
                price=amounts.line_total,
                is_eligible=draft.is_eligible,
                purchased_product_id=draft.purchased_product_id,
                comparison_product_id=draft.comparison_product_id,
                comparison_unit_price=draft.comparison_unit_price,
                comparison_price=amounts.comparison_line_total,
                incremental_cost=amounts.incremental_cost,
            )
            for position, (draft, amounts) in enumerate(lines)
        ]

    async def create(self, user_id: str, draft: ReceiptDraft) -> Receipt:
        """Store a receipt, deriving totals from its items when it has any."""
        validate_image(draft)
        await self._check_product_refs(user_id, draft.items)
        lines = [(item, calculate_item(item)) for item in draft.items]

        if draft.items:
            totals = recalculate_receipt_totals(draft.items)
        else:
            totals = ReceiptTotals(
                total_amount=draft.total_amount,
                eligible_amount=draft.eligible_amount,
            )

        row = ReceiptRow(
            user_id=user_id,
            total_amount=totals.total_amount,
            eligible_amount=totals.eligible_amount,
            **draft.model_dump(include=set(_HEADER_FIELDS)),
        )
        self._session.add(row)
        await self._session.flush()
        self._session.add_all(self._build_rows(row.id, lines))
        await self._session.flush()

        logger.info(
            "receipt_created",
            receipt_id=row.id,
            items=len(lines),
            total_amount=totals.total_amount,
            eligible_amount=totals.eligible_amount,
        )
        return await self.get(user_id, row.id)

    async def replace_receipt_items(
        self, receipt_id: str, items: Sequence[ReceiptItemDraft]
    ) -> Receipt:
        """Swap a receipt's items and totals in one all-or-nothing step.

        Old items are deleted and new ones inserted inside a savepoint; on
        any failure the previous items and totals remain.

        Raises:
            NotFoundError: If the receipt does not exist.
            InvalidInputError: If an item has a negative price or bad quantity.
        """
        row = await self._get_row(receipt_id, with_items=False)
        lines = [(item, calculate_item(item)) for item in items]
        totals = recalculate_receipt_totals(items)

        async with self._session.begin_nested():
            await self._session.execute(
                delete(ReceiptItemRow).where(ReceiptItemRow.receipt_id == receipt_id)
            )
            self._session.add_all(self._build_rows(receipt_id, lines))
            row.total_amount = totals.total_amount
            row.eligible_amount = totals.eligible_amount
            await self._session.flush()

        await self._session.refresh(row, attribute_names=["items"])
        logger.info(
            "receipt_items_replaced",
            receipt_id=receipt_id,
            items=len(lines),
            total_amount=totals.total_amount,
            eligible_amount=totals.eligible_amount,
        )
        return Receipt.model_validate(row)

    async def update(self, user_id: str, receipt_id: str, patch: ReceiptPatch) -> Receipt:
        """Apply a partial update.

        Supplying ``items`` replaces the item list. Totals are recomputed from
        the resulting items; client totals only apply to receipts without items.
        All checks run before anything is written.
        """
        row = await self._get_row(receipt_id, user_id)
        updates = patch.model_dump(exclude_unset=True, exclude={"items"})
        validate_image(patch)

        for name in ("store_name", "receipt_date", "total_amount", "eligible_amount"):
            if name in updates and updates[name] is None:
                raise InvalidInputError(f"{name} cannot be cleared")

        if patch.items is not None:
            await self._check_product_refs(user_id, patch.items)
            remaining = list(patch.items)
            # Clearing the items leaves nothing to carry the old totals.
            fallback_total, fallback_eligible = ZERO, ZERO
        else:
            remaining = [_as_draft(item) for item in row.items]
            fallback_total, fallback_eligible = row.total_amount, row.eligible_amount

        if remaining:
            totals = recalculate_receipt_totals(remaining)
        else:
            totals = ReceiptTotals(
                total_amount=updates.get("total_amount", fallback_total),
                eligible_amount=updates.get("eligible_amount", fallback_eligible),
            )
            if totals.eligible_amount > totals.total_amount:
                raise InvalidInputError("Eligible amount cannot exceed total amount")

        for name in _HEADER_FIELDS:
            if name in updates:
                setattr(row, name, updates[name])

        if patch.items is not None:
            await self._session.flush()
            await self.replace_receipt_items(receipt_id, patch.items)

        row.total_amount = totals.total_amount
        row.eligible_amount = totals.eligible_amount
        await self._session.flush()
        return await self.get(user_id, receipt_id)

    async def delete(self, user_id: str, receipt_id: str) -> None:
        """Delete a receipt and, by cascade, its items."""
        row = await self._get_row(receipt_id, user_id)
        await self._session.delete(row)
        await self._session.flush()
