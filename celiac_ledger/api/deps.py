"""FastAPI dependency injection for database access, identity and paging."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import date

import jwt
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.core.config import settings
from celiac_ledger.core.logging import get_logger, user_id_ctx
from celiac_ledger.ledger.aggregation import DateRange, listing_range
from celiac_ledger.models import User

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> str:
    """Resolve the requesting user from a bearer token.

    The token must be signed with the configured secret and carry a
    ``userId`` (or ``sub``) claim naming an existing user.

    Raises:
        HTTPException: 401 if the token is missing, invalid or names no user.
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("invalid_bearer_token", error=str(exc))
        raise _unauthorized("Invalid token") from exc

    user_id = payload.get("userId") or payload.get("sub")
    if not user_id or await db.get(User, str(user_id)) is None:
        raise _unauthorized("Invalid token")

    user_id_ctx.set(str(user_id))
    return str(user_id)


@dataclass(frozen=True)
class Page:
    """Limit and offset for list endpoints."""

    limit: int
    offset: int


def get_page(
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
) -> Page:
    """Clamp the requested page size to the configured bounds."""
    size = limit or settings.default_page_size
    return Page(limit=min(size, settings.max_page_size), offset=offset)


def get_listing_range(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
) -> DateRange | None:
    """Optional year or year+month filter; a bare month means this year."""
    if month is not None and year is None:
        year = date.today().year
    return listing_range(year, month)


def get_tax_year(year: int | None = Query(default=None, ge=2000, le=2100)) -> int:
    """Requested tax year, defaulting to the current calendar year."""
    return year if year is not None else date.today().year
