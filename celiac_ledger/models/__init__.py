"""SQLAlchemy models for the Celiac Ledger application."""

from celiac_ledger.models.base import Base
from celiac_ledger.models.ledger import (
    MedicalExpense,
    Product,
    Receipt,
    ReceiptItem,
    TaxProfile,
)
from celiac_ledger.models.user import User

__all__ = [
    "Base",
    "User",
    "Product",
    "Receipt",
    "ReceiptItem",
    "MedicalExpense",
    "TaxProfile",
]
