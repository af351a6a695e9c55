"""User-related SQLAlchemy models."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from celiac_ledger.models.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from celiac_ledger.models.ledger import (
        MedicalExpense,
        Product,
        Receipt,
        TaxProfile,
    )


class User(Base, IdMixin, TimestampMixin):
    """An account holder. Rows are provisioned by the external auth service."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))

    # Relationships
    products: Mapped[list["Product"]] = relationship(back_populates="user")
    receipts: Mapped[list["Receipt"]] = relationship(back_populates="user")
    medical_expenses: Mapped[list["MedicalExpense"]] = relationship(
        back_populates="user"
    )
    tax_profiles: Mapped[list["TaxProfile"]] = relationship(back_populates="user")
