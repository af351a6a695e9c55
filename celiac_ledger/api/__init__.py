"""API module exports."""

from celiac_ledger.api.deps import get_current_user_id, get_db
from celiac_ledger.api.errors import register_exception_handlers
from celiac_ledger.api.health import router as health_router
from celiac_ledger.api.medical import router as medical_router
from celiac_ledger.api.products import router as products_router
from celiac_ledger.api.receipts import router as receipts_router
from celiac_ledger.api.tax import router as tax_router

__all__ = [
    "get_current_user_id",
    "get_db",
    "health_router",
    "medical_router",
    "products_router",
    "receipts_router",
    "register_exception_handlers",
    "tax_router",
]
