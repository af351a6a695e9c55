"""Tax year-specific constants for the medical expense tax credit.

CRA publishes the fixed-dollar threshold for medical expenses every year.
The values live here rather than inline in the calculator so that adding a
new year is a one-line change.

Example:
    >>> from celiac_ledger.tax.year_config import get_tax_year_config
    >>> config = get_tax_year_config(2024)
    >>> print(config.medical_expense_fixed_cap)
    2759
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from celiac_ledger.core.errors import InvalidInputError
from celiac_ledger.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaxYearConfig:
    """Medical expense threshold constants for one tax year.

    All monetary values are Decimal for precision in tax calculations.
    This dataclass is frozen to prevent accidental modification.

    Attributes:
        tax_year: The tax year these values apply to.
        medical_expense_fixed_cap: Fixed-dollar part of the threshold
            (the threshold is the lesser of this and a share of net income).
        threshold_rate: Share of net income used for the threshold (3%).
        self_claim_line: Return line for expenses claimed for oneself.
        dependant_claim_line: Return line for expenses claimed for dependants.
    """

    tax_year: int
    medical_expense_fixed_cap: Decimal
    threshold_rate: Decimal = Decimal("0.03")
    self_claim_line: str = "33099"
    dependant_claim_line: str = "33199"


# CRA published values
TAX_YEAR_2019 = TaxYearConfig(
    tax_year=2019,
    medical_expense_fixed_cap=Decimal("2352"),
)

TAX_YEAR_2020 = TaxYearConfig(
    tax_year=2020,
    medical_expense_fixed_cap=Decimal("2397"),
)

TAX_YEAR_2021 = TaxYearConfig(
    tax_year=2021,
    medical_expense_fixed_cap=Decimal("2421"),
)

TAX_YEAR_2022 = TaxYearConfig(
    tax_year=2022,
    medical_expense_fixed_cap=Decimal("2479"),
)

TAX_YEAR_2023 = TaxYearConfig(
    tax_year=2023,
    medical_expense_fixed_cap=Decimal("2635"),
)

TAX_YEAR_2024 = TaxYearConfig(
    tax_year=2024,
    medical_expense_fixed_cap=Decimal("2759"),
)

TAX_YEAR_2025 = TaxYearConfig(
    tax_year=2025,
    medical_expense_fixed_cap=Decimal("2834"),
)

# Registry of available tax year configurations
TAX_YEAR_CONFIGS: dict[int, TaxYearConfig] = {
    2019: TAX_YEAR_2019,
    2020: TAX_YEAR_2020,
    2021: TAX_YEAR_2021,
    2022: TAX_YEAR_2022,
    2023: TAX_YEAR_2023,
    2024: TAX_YEAR_2024,
    2025: TAX_YEAR_2025,
}


def get_tax_year_config(year: int) -> TaxYearConfig:
    """Get configuration for a specific tax year.

    Years newer than the latest published entry reuse the most recent
    earlier configuration, since CRA publishes the cap late in the year.

    Args:
        year: The tax year (e.g., 2024).

    Returns:
        TaxYearConfig for the specified year.

    Raises:
        InvalidInputError: If the year predates every configured year.
    """
    if year in TAX_YEAR_CONFIGS:
        return TAX_YEAR_CONFIGS[year]

    earlier = [known for known in TAX_YEAR_CONFIGS if known < year]
    if not earlier:
        available = sorted(TAX_YEAR_CONFIGS.keys())
        raise InvalidInputError(
            f"No tax configuration for year {year}. Available years: {available}"
        )

    fallback_year = max(earlier)
    logger.warning(
        "tax_year_config_fallback",
        requested_year=year,
        fallback_year=fallback_year,
    )
    return TAX_YEAR_CONFIGS[fallback_year]
