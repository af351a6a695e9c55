"""Tests for receipt persistence and atomic item replacement."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from celiac_ledger.core.errors import InvalidInputError, NotFoundError
from celiac_ledger.domain.models import (
    ProductDraft,
    ReceiptDraft,
    ReceiptImage,
    ReceiptItemDraft,
    ReceiptPatch,
)
from celiac_ledger.ledger.aggregation import tax_year_range
from celiac_ledger.models import User
from celiac_ledger.repositories import LedgerRepository, ProductRepository, ReceiptRepository
from celiac_ledger.repositories.receipts import validate_image


def _items() -> list[ReceiptItemDraft]:
    return [
        ReceiptItemDraft(
            name="GF bread",
            unit_price=Decimal("6.99"),
            quantity=2,
            comparison_unit_price=Decimal("3.49"),
        ),
        ReceiptItemDraft(name="GF crackers", unit_price=Decimal("4.50"), quantity=2),
        ReceiptItemDraft(
            name="Milk", unit_price=Decimal("10.00"), quantity=2, is_eligible=False
        ),
    ]


def _draft(**overrides) -> ReceiptDraft:
    fields = {
        "store_name": "Loblaws",
        "receipt_date": date(2024, 3, 14),
        "items": _items(),
    }
    fields.update(overrides)
    return ReceiptDraft(**fields)


class TestCreateReceipt:
    @pytest.mark.asyncio
    async def test_totals_are_recomputed_from_items(
        self, session: AsyncSession, user: User
    ) -> None:
        receipt = await ReceiptRepository(session).create(
            user.id,
            _draft(total_amount=Decimal("999.00"), eligible_amount=Decimal("1.00")),
        )

        assert receipt.total_amount == Decimal("42.98")
        assert receipt.eligible_amount == Decimal("16.00")
        assert [item.name for item in receipt.items] == ["GF bread", "GF crackers", "Milk"]
        bread = receipt.items[0]
        assert bread.price == Decimal("13.98")
        assert bread.comparison_price == Decimal("6.98")
        assert bread.incremental_cost == Decimal("7.00")
        assert receipt.items[1].incremental_cost is None

    @pytest.mark.asyncio
    async def test_unitemized_receipt_keeps_client_totals(
        self, session: AsyncSession, user: User
    ) -> None:
        receipt = await ReceiptRepository(session).create(
            user.id,
            _draft(
                items=[], total_amount=Decimal("25.00"), eligible_amount=Decimal("8.40")
            ),
        )
        assert receipt.items == []
        assert receipt.total_amount == Decimal("25.00")
        assert receipt.eligible_amount == Decimal("8.40")

    @pytest.mark.asyncio
    async def test_product_references_must_be_visible(
        self, session: AsyncSession, user: User, other_user: User
    ) -> None:
        foreign = await ProductRepository(session).create(
            other_user.id, ProductDraft(name="Rice pasta", category="Pasta")
        )
        item = ReceiptItemDraft(
            name="Rice pasta", unit_price=Decimal("3.99"), purchased_product_id=foreign.id
        )
        with pytest.raises(NotFoundError):
            await ReceiptRepository(session).create(user.id, _draft(items=[item]))

    @pytest.mark.asyncio
    async def test_links_own_products(self, session: AsyncSession, user: User) -> None:
        products = ProductRepository(session)
        gf = await products.create(user.id, ProductDraft(name="GF pasta", category="Pasta"))
        regular = await products.create(
            user.id, ProductDraft(name="Pasta", category="Pasta", is_gluten_free=False)
        )
        item = ReceiptItemDraft(
            name="GF pasta",
            unit_price=Decimal("4.99"),
            purchased_product_id=gf.id,
            comparison_product_id=regular.id,
            comparison_unit_price=Decimal("1.99"),
        )
        receipt = await ReceiptRepository(session).create(user.id, _draft(items=[item]))
        assert receipt.items[0].purchased_product_id == gf.id
        assert receipt.items[0].comparison_product_id == regular.id
        assert receipt.eligible_amount == Decimal("3.00")


class TestValidateImage:
    def test_rejects_disallowed_type(self) -> None:
        with pytest.raises(InvalidInputError, match="Unsupported image type"):
            validate_image(ReceiptImage(image_mime_type="text/html"))

    def test_rejects_oversized_image(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_image(ReceiptImage(image_mime_type="image/png", image_size=10**9))

    def test_accepts_allowed_image(self) -> None:
        validate_image(ReceiptImage(image_mime_type="image/jpeg", image_size=2048))


class TestUpdateReceipt:
    @pytest.mark.asyncio
    async def test_header_update_recomputes_from_stored_items(
        self, session: AsyncSession, user: User
    ) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())

        updated = await repo.update(
            user.id,
            created.id,
            ReceiptPatch(store_name="Metro", total_amount=Decimal("1.00")),
        )

        assert updated.store_name == "Metro"
        assert updated.total_amount == Decimal("42.98")
        assert updated.eligible_amount == Decimal("16.00")
        assert len(updated.items) == 3

    @pytest.mark.asyncio
    async def test_items_replace_whole_list(self, session: AsyncSession, user: User) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())

        updated = await repo.update(
            user.id,
            created.id,
            ReceiptPatch(
                items=[ReceiptItemDraft(name="GF flour", unit_price=Decimal("8.25"))]
            ),
        )

        assert [item.name for item in updated.items] == ["GF flour"]
        assert updated.total_amount == Decimal("8.25")
        assert updated.eligible_amount == Decimal("8.25")

    @pytest.mark.asyncio
    async def test_clearing_items_uses_supplied_totals(
        self, session: AsyncSession, user: User
    ) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())

        updated = await repo.update(
            user.id,
            created.id,
            ReceiptPatch(
                items=[], total_amount=Decimal("20.00"), eligible_amount=Decimal("5.00")
            ),
        )
        assert updated.items == []
        assert updated.total_amount == Decimal("20.00")
        assert updated.eligible_amount == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_cannot_clear_required_header(
        self, session: AsyncSession, user: User
    ) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())
        with pytest.raises(InvalidInputError):
            await repo.update(user.id, created.id, ReceiptPatch(store_name=None))

    @pytest.mark.asyncio
    async def test_unitemized_totals_checked_against_each_other(
        self, session: AsyncSession, user: User
    ) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(
            user.id,
            _draft(items=[], total_amount=Decimal("25.00"), eligible_amount=Decimal("8.40")),
        )
        with pytest.raises(InvalidInputError, match="cannot exceed"):
            await repo.update(
                user.id, created.id, ReceiptPatch(eligible_amount=Decimal("30.00"))
            )

    @pytest.mark.asyncio
    async def test_other_users_receipt_is_not_found(
        self, session: AsyncSession, user: User, other_user: User
    ) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())
        with pytest.raises(NotFoundError):
            await repo.update(other_user.id, created.id, ReceiptPatch(store_name="Metro"))
        with pytest.raises(NotFoundError):
            await repo.get(other_user.id, created.id)


class TestReplaceReceiptItems:
    @pytest.mark.asyncio
    async def test_replaces_items_and_totals(self, session: AsyncSession, user: User) -> None:
        ledger = LedgerRepository(session)
        created = await ledger.receipts.create(user.id, _draft())

        replaced = await ledger.replace_receipt_items(
            created.id,
            [
                ReceiptItemDraft(
                    name="GF buns",
                    unit_price=Decimal("5.49"),
                    quantity=3,
                    comparison_unit_price=Decimal("2.49"),
                )
            ],
        )
        assert [item.name for item in replaced.items] == ["GF buns"]
        assert replaced.total_amount == Decimal("16.47")
        assert replaced.eligible_amount == Decimal("9.00")

    @pytest.mark.asyncio
    async def test_failure_leaves_previous_items_and_totals(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        user: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async with session_factory() as session:
            created = await ReceiptRepository(session).create(user.id, _draft())
            await session.commit()

        def failing_build_rows(receipt_id, lines):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(
            ReceiptRepository, "_build_rows", staticmethod(failing_build_rows)
        )

        async with session_factory() as session:
            with pytest.raises(RuntimeError, match="insert failed"):
                await ReceiptRepository(session).replace_receipt_items(
                    created.id,
                    [ReceiptItemDraft(name="GF flour", unit_price=Decimal("8.25"))],
                )
            # The outer transaction survives; committing it must not drop items.
            await session.commit()

        monkeypatch.undo()

        async with session_factory() as session:
            reloaded = await ReceiptRepository(session).get(user.id, created.id)

        assert [item.name for item in reloaded.items] == ["GF bread", "GF crackers", "Milk"]
        assert reloaded.total_amount == Decimal("42.98")
        assert reloaded.eligible_amount == Decimal("16.00")

    @pytest.mark.asyncio
    async def test_invalid_item_rejected_before_any_write(
        self, session: AsyncSession, user: User
    ) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())
        bad = ReceiptItemDraft.model_construct(
            name="Broken", unit_price=Decimal("-1"), quantity=1, is_eligible=True,
            comparison_unit_price=None,
        )
        with pytest.raises(InvalidInputError):
            await repo.replace_receipt_items(created.id, [bad])

        reloaded = await repo.get(user.id, created.id)
        assert len(reloaded.items) == 3

    @pytest.mark.asyncio
    async def test_unknown_receipt_not_found(self, session: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await ReceiptRepository(session).replace_receipt_items("missing", [])


class TestFindReceipts:
    @pytest.mark.asyncio
    async def test_scoped_to_user_and_range(
        self, session: AsyncSession, user: User, other_user: User
    ) -> None:
        repo = ReceiptRepository(session)
        await repo.create(user.id, _draft())
        await repo.create(user.id, _draft(receipt_date=date(2023, 12, 31)))
        await repo.create(other_user.id, _draft())

        found = await LedgerRepository(session).find_receipts(user.id, tax_year_range(2024))
        assert len(found) == 1
        assert found[0].receipt_date == date(2024, 3, 14)
        assert len(found[0].items) == 3

    @pytest.mark.asyncio
    async def test_list_is_paginated(self, session: AsyncSession, user: User) -> None:
        repo = ReceiptRepository(session)
        for day in (1, 2, 3):
            await repo.create(user.id, _draft(receipt_date=date(2024, 5, day)))

        page, total = await repo.list_for_user(user.id, limit=2, offset=0)
        assert total == 3
        assert [r.receipt_date.day for r in page] == [3, 2]

    @pytest.mark.asyncio
    async def test_delete_removes_receipt(self, session: AsyncSession, user: User) -> None:
        repo = ReceiptRepository(session)
        created = await repo.create(user.id, _draft())
        await repo.delete(user.id, created.id)
        with pytest.raises(NotFoundError):
            await repo.get(user.id, created.id)
