"""SQLAlchemy models for products, receipts, medical expenses and tax profiles."""

import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from celiac_ledger.domain.models import ClaimingFor, MedicalCategory
from celiac_ledger.models.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from celiac_ledger.models.user import User

MONEY = Numeric(12, 2, asdecimal=True)


def _enum_values(enum_type: type) -> list[str]:
    return [member.value for member in enum_type]


class Product(Base, IdMixin, TimestampMixin):
    """A product owned by a user or by the public catalogue owner."""

    __tablename__ = "products"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    brand: Mapped[str | None] = mapped_column(String(255))
    is_gluten_free: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    price: Mapped[Decimal | None] = mapped_column(MONEY)
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="products")


class Receipt(Base, IdMixin, TimestampMixin):
    """A store receipt. Totals are projections of its items."""

    __tablename__ = "receipts"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    receipt_date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    eligible_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1000))
    image_file_name: Mapped[str | None] = mapped_column(String(255))
    image_mime_type: Mapped[str | None] = mapped_column(String(100))
    image_size: Mapped[int | None] = mapped_column(Integer)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="receipts")
    items: Mapped[list["ReceiptItem"]] = relationship(
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="ReceiptItem.position",
    )


class ReceiptItem(Base, IdMixin):
    """A receipt line. ``price`` and ``comparison_price`` hold line totals."""

    __tablename__ = "receipt_items"

    receipt_id: Mapped[str] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    is_eligible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    purchased_product_id: Mapped[str | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL")
    )
    comparison_product_id: Mapped[str | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL")
    )
    comparison_unit_price: Mapped[Decimal | None] = mapped_column(MONEY)
    comparison_price: Mapped[Decimal | None] = mapped_column(MONEY)
    incremental_cost: Mapped[Decimal | None] = mapped_column(MONEY)

    # Relationships
    receipt: Mapped["Receipt"] = relationship(back_populates="items")


class MedicalExpense(Base, IdMixin, TimestampMixin):
    """A medical expense paid by the user."""

    __tablename__ = "medical_expenses"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    category: Mapped[MedicalCategory] = mapped_column(
        Enum(MedicalCategory, name="medical_category", values_callable=_enum_values),
        default=MedicalCategory.OTHER,
        nullable=False,
    )
    provider: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="medical_expenses")


class TaxProfile(Base, IdMixin, TimestampMixin):
    """Income inputs for one user and tax year."""

    __tablename__ = "tax_profiles"
    __table_args__ = (UniqueConstraint("user_id", "year", name="uq_tax_profiles_user_year"),)

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    net_income: Mapped[Decimal | None] = mapped_column(MONEY)
    dependant_income: Mapped[Decimal | None] = mapped_column(MONEY)
    claiming_for: Mapped[ClaimingFor] = mapped_column(
        Enum(ClaimingFor, name="claiming_for", values_callable=_enum_values),
        default=ClaimingFor.SELF,
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="tax_profiles")
