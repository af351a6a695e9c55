"""CRA medical expense threshold.

Only expenses above a threshold can be claimed. The threshold is the lesser
of a fixed dollar cap (published yearly, see ``TaxYearConfig``) and 3% of
the claiming party's net income. The gluten-free incremental cost counts as
a medical expense alongside the ordinary ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from celiac_ledger.core.errors import IncompleteInputError, InvalidInputError
from celiac_ledger.domain.models import ZERO, quantize_money
from celiac_ledger.tax.year_config import TaxYearConfig


@dataclass(frozen=True)
class DeductionResult:
    """Breakdown of the deduction calculation.

    Attributes:
        total_eligible_expenses: Gluten-free incremental cost plus medical
            expenses, before the threshold.
        threshold_percent_amount: Threshold rate applied to net income.
        fixed_cap: The year's fixed-dollar cap.
        threshold: Threshold actually applied (lesser of the two above).
        deductible_amount: Amount above the threshold, never negative.
    """

    total_eligible_expenses: Decimal
    threshold_percent_amount: Decimal
    fixed_cap: Decimal
    threshold: Decimal
    deductible_amount: Decimal


def calculate_threshold(net_income: Decimal | None, config: TaxYearConfig) -> Decimal:
    """Return the non-deductible floor for the given income.

    Raises:
        IncompleteInputError: If income is unknown.
        InvalidInputError: If income is negative.
    """
    if net_income is None:
        raise IncompleteInputError(
            "Net income is required to compute the medical expense threshold",
            missing=["netIncome"],
        )
    if net_income < 0:
        raise InvalidInputError("Net income cannot be negative")
    return quantize_money(
        min(config.medical_expense_fixed_cap, net_income * config.threshold_rate)
    )


def calculate_deduction(
    total_eligible_amount: Decimal,
    total_medical_expenses: Decimal,
    net_income: Decimal | None,
    config: TaxYearConfig,
) -> DeductionResult:
    """Apply the threshold to a year's eligible expenses.

    Args:
        total_eligible_amount: Gluten-free incremental cost for the year.
        total_medical_expenses: Other medical expenses for the year.
        net_income: Net income of the claiming party; None if unknown.
        config: Constants for the tax year.

    Returns:
        DeductionResult with the raw total, threshold and deductible amount.

    Raises:
        IncompleteInputError: If ``net_income`` is None. Income is never
            assumed to be zero, which would overstate the deduction.
        InvalidInputError: On negative amounts or income.

    Example:
        >>> result = calculate_deduction(
        ...     Decimal("1000"), Decimal("2000"), Decimal("50000"), TAX_YEAR_2024
        ... )
        >>> result.threshold, result.deductible_amount
        (Decimal('1500.00'), Decimal('1500.00'))
    """
    if total_eligible_amount < 0 or total_medical_expenses < 0:
        raise InvalidInputError("Expense totals cannot be negative")

    threshold = calculate_threshold(net_income, config)

    total_eligible_expenses = quantize_money(total_eligible_amount + total_medical_expenses)
    return DeductionResult(
        total_eligible_expenses=total_eligible_expenses,
        threshold_percent_amount=quantize_money(net_income * config.threshold_rate),
        fixed_cap=quantize_money(config.medical_expense_fixed_cap),
        threshold=threshold,
        deductible_amount=quantize_money(max(ZERO, total_eligible_expenses - threshold)),
    )
