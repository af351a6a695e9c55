"""Product persistence with a shared, copy-on-write public catalogue."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.core.config import settings
from celiac_ledger.core.errors import NotFoundError
from celiac_ledger.core.logging import get_logger
from celiac_ledger.domain.models import (
    OwnedBy,
    Product,
    ProductDraft,
    ProductPatch,
    PublicOwner,
)
from celiac_ledger.models import Product as ProductRow
from celiac_ledger.models import User

logger = get_logger(__name__)

_COPIED_FIELDS = ("name", "category", "brand", "is_gluten_free", "price", "notes")


class ProductRepository:
    """Products visible to a user: their own plus the public catalogue."""

    def __init__(
        self, session: AsyncSession, public_owner_email: str | None = None
    ) -> None:
        self._session = session
        self._public_owner_email = public_owner_email or settings.public_owner_email
        self._public_owner_id: str | None = None
        self._public_owner_loaded = False

    async def public_owner_id(self) -> str | None:
        """ID of the catalogue owner, or None if no such user exists."""
        if not self._public_owner_loaded:
            result = await self._session.execute(
                select(User.id).where(User.email == self._public_owner_email)
            )
            self._public_owner_id = result.scalar_one_or_none()
            self._public_owner_loaded = True
        return self._public_owner_id

    async def _visibility_filter(self, user_id: str):
        public_id = await self.public_owner_id()
        if public_id is None or public_id == user_id:
            return ProductRow.user_id == user_id
        return or_(ProductRow.user_id == user_id, ProductRow.user_id == public_id)

    async def _to_domain(self, row: ProductRow, user_id: str) -> Product:
        public_id = await self.public_owner_id()
        owner = (
            PublicOwner()
            if row.user_id == public_id and row.user_id != user_id
            else OwnedBy(user_id=row.user_id)
        )
        return Product(
            id=row.id,
            name=row.name,
            category=row.category,
            brand=row.brand,
            is_gluten_free=row.is_gluten_free,
            price=row.price,
            notes=row.notes,
            owner=owner,
        )

    async def list_visible(
        self,
        user_id: str,
        *,
        category: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Product], int]:
        """List own and public products, newest first.

        Returns:
            The requested page and the total number of matches.
        """
        filters = [await self._visibility_filter(user_id)]
        if category:
            filters.append(ProductRow.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(ProductRow.name.ilike(pattern), ProductRow.brand.ilike(pattern))
            )

        total_result = await self._session.execute(
            select(func.count()).select_from(ProductRow).where(*filters)
        )
        total = int(total_result.scalar() or 0)

        rows_result = await self._session.execute(
            select(ProductRow)
            .where(*filters)
            .order_by(ProductRow.created_at.desc(), ProductRow.id)
            .limit(limit)
            .offset(offset)
        )
        products = [
            await self._to_domain(row, user_id) for row in rows_result.scalars().all()
        ]
        return products, total

    async def list_categories(self, user_id: str) -> list[str]:
        """Distinct categories of the user's own products, sorted."""
        result = await self._session.execute(
            select(ProductRow.category)
            .where(ProductRow.user_id == user_id)
            .distinct()
            .order_by(ProductRow.category)
        )
        return list(result.scalars().all())

    async def _get_visible_row(self, user_id: str, product_id: str) -> ProductRow:
        result = await self._session.execute(
            select(ProductRow).where(
                ProductRow.id == product_id, await self._visibility_filter(user_id)
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("Product")
        return row

    async def get_visible(self, user_id: str, product_id: str) -> Product:
        """Fetch a product the user owns or that is public.

        Raises:
            NotFoundError: If the product is missing or belongs to someone else.
        """
        return await self._to_domain(
            await self._get_visible_row(user_id, product_id), user_id
        )

    async def create(self, user_id: str, draft: ProductDraft) -> Product:
        row = ProductRow(user_id=user_id, **draft.model_dump())
        self._session.add(row)
        await self._session.flush()
        return await self._to_domain(row, user_id)

    async def update(self, user_id: str, product_id: str, patch: ProductPatch) -> Product:
        """Apply a partial update.

        Own products change in place. Public products are copied into the
        user's catalogue first and the copy is changed; the original stays
        untouched. The returned product carries the copy's ID.
        """
        row = await self._get_visible_row(user_id, product_id)
        product = await self._to_domain(row, user_id)

        if isinstance(product.owner, PublicOwner):
            copy = ProductRow(
                user_id=user_id,
                **{name: getattr(row, name) for name in _COPIED_FIELDS},
            )
            self._session.add(copy)
            await self._session.flush()
            logger.info(
                "product_copied_on_write",
                source_product_id=row.id,
                product_id=copy.id,
            )
            row = copy

        for name, value in patch.model_dump(exclude_unset=True).items():
            if name in ("name", "category", "is_gluten_free") and value is None:
                continue
            setattr(row, name, value)

        await self._session.flush()
        return await self._to_domain(row, user_id)

    async def delete(self, user_id: str, product_id: str) -> None:
        """Delete one of the user's own products. Public products cannot be deleted."""
        row = await self._session.get(ProductRow, product_id)
        if row is None or row.user_id != user_id:
            raise NotFoundError("Product")
        await self._session.delete(row)
        await self._session.flush()
