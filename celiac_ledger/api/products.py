"""Products API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.api.deps import Page, get_current_user_id, get_db, get_page
from celiac_ledger.domain.models import (
    LedgerModel,
    Money,
    Product,
    ProductDraft,
    ProductPatch,
)
from celiac_ledger.repositories import ProductRepository

router = APIRouter(prefix="/api/products", tags=["products"])


class ProductResponse(LedgerModel):
    """Product as returned to clients."""

    id: str
    name: str
    category: str
    brand: str | None
    is_gluten_free: bool
    price: Money | None
    notes: str | None
    is_public: bool


class ProductListResponse(LedgerModel):
    """Paginated product list response."""

    items: list[ProductResponse]
    total: int
    limit: int
    offset: int


class CategoryListResponse(LedgerModel):
    categories: list[str]


def _to_product_response(product: Product) -> ProductResponse:
    """Map a domain product to the response model."""
    return ProductResponse(**product.model_dump(), is_public=product.is_public)


@router.get("", response_model=ProductListResponse)
async def list_products(
    category: str | None = Query(default=None, min_length=1),
    search: str | None = Query(default=None, min_length=1),
    page: Page = Depends(get_page),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProductListResponse:
    """List the user's own products plus the public catalogue."""
    products, total = await ProductRepository(db).list_visible(
        user_id,
        category=category,
        search=search,
        limit=page.limit,
        offset=page.offset,
    )
    return ProductListResponse(
        items=[_to_product_response(product) for product in products],
        total=total,
        limit=page.limit,
        offset=page.offset,
    )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductDraft,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await ProductRepository(db).create(user_id, payload)
    return _to_product_response(product)


@router.get("/categories/list", response_model=CategoryListResponse)
async def list_categories(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> CategoryListResponse:
    """Distinct categories across the user's own products."""
    categories = await ProductRepository(db).list_categories(user_id)
    return CategoryListResponse(categories=categories)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await ProductRepository(db).get_visible(user_id, product_id)
    return _to_product_response(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductPatch,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    """Update a product; editing a public product saves a private copy."""
    product = await ProductRepository(db).update(user_id, product_id, payload)
    return _to_product_response(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> None:
    await ProductRepository(db).delete(user_id, product_id)
