"""Tax profile persistence: one row per user and year."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from celiac_ledger.core.errors import InvalidInputError
from celiac_ledger.core.logging import get_logger
from celiac_ledger.domain.models import TaxProfile, TaxProfileFields
from celiac_ledger.models import TaxProfile as TaxProfileRow

logger = get_logger(__name__)

EARLIEST_PROFILE_YEAR = 2000


def validate_profile_year(year: int) -> None:
    """Reject years before 2000 or after next year."""
    latest = date.today().year + 1
    if not EARLIEST_PROFILE_YEAR <= year <= latest:
        raise InvalidInputError(
            f"Valid year is required ({EARLIEST_PROFILE_YEAR}-{latest})"
        )


class TaxProfileRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_row(self, user_id: str, year: int) -> TaxProfileRow | None:
        result = await self._session.execute(
            select(TaxProfileRow).where(
                TaxProfileRow.user_id == user_id, TaxProfileRow.year == year
            )
        )
        return result.scalar_one_or_none()

    async def find_tax_profile(self, user_id: str, year: int) -> TaxProfile | None:
        row = await self._get_row(user_id, year)
        return TaxProfile.model_validate(row) if row is not None else None

    async def upsert_tax_profile(
        self, user_id: str, year: int, fields: TaxProfileFields
    ) -> TaxProfile:
        """Create the (user, year) profile or overwrite its fields."""
        validate_profile_year(year)
        row = await self._get_row(user_id, year)
        values = fields.model_dump()
        if row is None:
            row = TaxProfileRow(user_id=user_id, year=year, **values)
            self._session.add(row)
            created = True
        else:
            for name, value in values.items():
                setattr(row, name, value)
            created = False

        await self._session.flush()
        logger.info("tax_profile_saved", year=year, created=created)
        return TaxProfile.model_validate(row)
