"""Async SQLAlchemy repositories."""

from celiac_ledger.repositories.ledger import LedgerRepository
from celiac_ledger.repositories.medical import MedicalExpenseRepository
from celiac_ledger.repositories.products import ProductRepository
from celiac_ledger.repositories.receipts import ReceiptRepository
from celiac_ledger.repositories.tax_profiles import TaxProfileRepository

__all__ = [
    "LedgerRepository",
    "MedicalExpenseRepository",
    "ProductRepository",
    "ReceiptRepository",
    "TaxProfileRepository",
]
