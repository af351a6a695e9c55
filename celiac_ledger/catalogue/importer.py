"""Import a retailer CSV export into the public product catalogue.

The export has no usable header row; columns are read by position. Every
imported product is owned by the public catalogue user, which is created on
first import.
"""

from __future__ import annotations

import argparse
import asyncio
import csv
import html
import re
import sys
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.core.config import settings
from celiac_ledger.core.database import get_db_session
from celiac_ledger.core.logging import configure_logging, get_logger
from celiac_ledger.domain.models import ProductDraft
from celiac_ledger.models import Product as ProductRow
from celiac_ledger.models import User

logger = get_logger(__name__)

CSV_COLUMNS = [
    "url",
    "product_name",
    "badge",
    "image_url",
    "add_button",
    "price",
    "price_display",
    "unit_price",
    "brand",
    "product_name_clean",
    "review_count",
    "rating",
    "delivery_info",
    "delivery_icon",
    "pickup_text",
    "pickup_availability",
    "delivery_text",
    "delivery_availability",
]

DEFAULT_BATCH_SIZE = 50
UNKNOWN_BRAND = "Unknown"

# First match wins, so order matters ("pizza crust mix" is Frozen Foods).
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Pasta", ("pasta", "macaroni", "spaghetti", "fusilli", "penne", "lasagne")),
    ("Bread & Bakery", ("bread", "bagel", "bun", "loaf", "roll")),
    ("Breakfast & Cereal", ("cereal", "chex")),
    ("Cookies & Crackers", ("cookie", "cracker")),
    ("Tortillas & Wraps", ("tortilla", "wrap", "pita")),
    ("Snacks", ("chip", "snack", "bar")),
    ("Frozen Foods", ("pizza", "frozen")),
    ("Baking Mixes", ("mix", "baking")),
    ("Condiments & Sauces", ("sauce", "dressing", "dip")),
]
DEFAULT_CATEGORY = "Other"

_NON_PRICE_CHARS = re.compile(r"[^0-9.]")
_WHITESPACE = re.compile(r"\s+")


def parse_price(text: str | None) -> Decimal | None:
    """Pull a price out of display text such as ``"Now $4.97"``.

    Returns:
        The price, or None when no number can be read.
    """
    if not text:
        return None
    digits = _NON_PRICE_CHARS.sub("", text)
    if not digits:
        return None
    try:
        return Decimal(digits)
    except InvalidOperation:
        return None


def clean_name(text: str | None) -> str:
    """Decode HTML entities and collapse whitespace."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", html.unescape(text).replace("\xa0", " ")).strip()


def categorize_product(name: str) -> str:
    """Guess a catalogue category from keywords in the product name."""
    lowered = name.lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def _dedupe_key(brand: str | None, name: str) -> str:
    return f"{brand or UNKNOWN_BRAND}-{name}".lower()


@dataclass
class CatalogueParse:
    """Products read from an export, plus what was skipped."""

    products: list[ProductDraft] = field(default_factory=list)
    rows_read: int = 0
    skipped_incomplete: int = 0
    skipped_duplicate: int = 0


def read_catalogue(lines: Iterable[str]) -> CatalogueParse:
    """Parse export lines into product drafts.

    The first line is a header and is skipped. Rows without a name or a
    positive price are dropped, as are repeats of the same brand and name.
    """
    parsed = CatalogueParse()
    seen: set[str] = set()

    reader = csv.DictReader(lines, fieldnames=CSV_COLUMNS, restval="")
    next(reader, None)
    for row in reader:
        parsed.rows_read += 1
        name = clean_name(row["product_name"] or row["product_name_clean"])
        brand = clean_name(row["brand"]) or UNKNOWN_BRAND
        price = parse_price(row["price"])
        if not name or not price:
            parsed.skipped_incomplete += 1
            continue

        key = _dedupe_key(brand, name)
        if key in seen:
            logger.debug("catalogue_duplicate_skipped", name=name, brand=brand)
            parsed.skipped_duplicate += 1
            continue
        seen.add(key)

        try:
            draft = ProductDraft(
                name=name[:255],
                category=categorize_product(name),
                brand=brand,
                is_gluten_free=True,
                price=price,
                notes=f"Imported from retailer catalogue. URL: {row['url'] or ''}",
            )
        except ValidationError as exc:
            logger.warning("catalogue_row_invalid", name=name, error=str(exc))
            parsed.skipped_incomplete += 1
            continue
        parsed.products.append(draft)

    return parsed


async def ensure_public_owner(session: AsyncSession, email: str) -> User:
    """Return the catalogue owner, creating the user if missing."""
    result = await session.execute(select(User).where(User.email == email))
    owner = result.scalar_one_or_none()
    if owner is None:
        owner = User(email=email, name="Public Catalogue")
        session.add(owner)
        await session.flush()
        logger.info("public_owner_created", user_id=owner.id)
    return owner


async def import_catalogue(
    session: AsyncSession,
    products: Sequence[ProductDraft],
    *,
    owner_email: str | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Insert products into the public catalogue in batches.

    Products already in the catalogue (same brand and name) are skipped.
    Each batch runs in its own savepoint; a failed batch is logged and the
    rest continue.

    Returns:
        Number of products inserted.
    """
    owner = await ensure_public_owner(session, owner_email or settings.public_owner_email)
    existing = await session.execute(
        select(ProductRow.brand, ProductRow.name).where(ProductRow.user_id == owner.id)
    )
    known = {_dedupe_key(brand, name) for brand, name in existing.all()}
    pending = [
        product for product in products if _dedupe_key(product.brand, product.name) not in known
    ]

    inserted = 0
    batch_count = (len(pending) + batch_size - 1) // batch_size
    for index in range(batch_count):
        batch = pending[index * batch_size : (index + 1) * batch_size]
        try:
            async with session.begin_nested():
                session.add_all(
                    ProductRow(user_id=owner.id, **product.model_dump()) for product in batch
                )
                await session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "catalogue_batch_failed", batch=index + 1, batches=batch_count, error=str(exc)
            )
            continue
        inserted += len(batch)
        logger.info(
            "catalogue_batch_inserted",
            batch=index + 1,
            batches=batch_count,
            inserted=inserted,
            pending=len(pending),
        )

    return inserted


async def _run(path: Path, batch_size: int, dry_run: bool) -> None:
    with path.open(newline="", encoding="utf-8") as handle:
        parsed = read_catalogue(handle)

    categories = Counter(product.category for product in parsed.products)
    logger.info(
        "catalogue_parsed",
        rows=parsed.rows_read,
        unique=len(parsed.products),
        skipped_incomplete=parsed.skipped_incomplete,
        skipped_duplicate=parsed.skipped_duplicate,
        categories=dict(categories.most_common()),
    )
    if dry_run:
        return

    async for session in get_db_session():
        inserted = await import_catalogue(session, parsed.products, batch_size=batch_size)
    logger.info("catalogue_import_completed", inserted=inserted)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="celiac-ledger-import",
        description="Import a retailer CSV export into the public product catalogue",
    )
    parser.add_argument("csv_path", type=Path, help="Path to the CSV export")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help="Products inserted per batch",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and report without writing to the database",
    )
    args = parser.parse_args(argv)

    if args.batch_size < 1:
        parser.error("--batch-size must be at least 1")
    if not args.csv_path.is_file():
        print(f"File not found: {args.csv_path}", file=sys.stderr)
        sys.exit(1)

    configure_logging()
    asyncio.run(_run(args.csv_path, args.batch_size, args.dry_run))


if __name__ == "__main__":
    main()
