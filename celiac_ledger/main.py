"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from celiac_ledger.api.errors import register_exception_handlers
from celiac_ledger.api.health import router as health_router
from celiac_ledger.api.medical import router as medical_router
from celiac_ledger.api.middleware import RequestContextMiddleware
from celiac_ledger.api.products import router as products_router
from celiac_ledger.api.receipts import router as receipts_router
from celiac_ledger.api.tax import router as tax_router
from celiac_ledger.core.config import settings
from celiac_ledger.core.database import create_engine, create_session_factory
from celiac_ledger.core.logging import configure_logging, get_logger
from celiac_ledger.core.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory

    Shutdown:
        - Dispose database engine
    """
    # Configure logging first
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    # Create database engine and session factory
    app.state.db_engine = create_engine()
    app.state.async_session = create_session_factory(app.state.db_engine)
    logger.info("Database engine created")

    yield

    # Shutdown
    logger.info("Shutting down application")

    await app.state.db_engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Celiac Ledger",
    description="Gluten-free purchase tracking and CRA medical expense deduction estimates",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(health_router)
app.include_router(products_router)
app.include_router(receipts_router)
app.include_router(medical_router)
app.include_router(tax_router)
