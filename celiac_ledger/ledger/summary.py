"""Tax summary and deduction estimate for a user and tax year.

Combines aggregation and the threshold rule over records fetched through a
read-only data-access interface. Nothing here writes.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Literal, Protocol

from celiac_ledger.core.errors import IncompleteInputError
from celiac_ledger.core.logging import get_logger
from celiac_ledger.domain.models import (
    ClaimingFor,
    LedgerModel,
    MedicalCategory,
    MedicalExpense,
    Money,
    Receipt,
    TaxProfile,
    quantize_money,
)
from celiac_ledger.ledger.aggregation import (
    DateRange,
    YearAggregate,
    aggregate_tax_year,
    tax_year_range,
)
from celiac_ledger.ledger.threshold import DeductionResult, calculate_deduction
from celiac_ledger.tax.year_config import TaxYearConfig, get_tax_year_config

logger = get_logger(__name__)

DISCLAIMER = (
    "This is an estimate only and is not tax advice. Confirm eligible amounts "
    "and thresholds with the Canada Revenue Agency or a tax professional."
)


class LedgerReader(Protocol):
    """Data access needed to compute a summary."""

    async def find_receipts(self, user_id: str, date_range: DateRange) -> list[Receipt]: ...

    async def find_medical_expenses(
        self, user_id: str, date_range: DateRange
    ) -> list[MedicalExpense]: ...

    async def find_tax_profile(self, user_id: str, year: int) -> TaxProfile | None: ...


# =============================================================================
# Result Models
# =============================================================================


class ReceiptMonth(LedgerModel):
    count: int
    total_amount: Money
    eligible_amount: Money


class MedicalMonth(LedgerModel):
    count: int
    total_amount: Money


class MonthlyBreakdown(LedgerModel):
    month: int
    month_name: str
    count: int
    amount: Money
    receipts: ReceiptMonth
    medical: MedicalMonth


class CategoryTotal(LedgerModel):
    count: int
    total_amount: Money


class TaxSummary(LedgerModel):
    """Year totals plus, when income is known, the deductible amount."""

    year: int
    total_eligible_amount: Money
    total_medical_expenses: Money
    total_receipt_amount: Money
    total_eligible_expenses: Money
    total_deductible: Money | None
    threshold: Money | None
    receipts_count: int
    medical_expenses_count: int
    claiming_for: ClaimingFor
    income_status: Literal["complete", "missing"]
    monthly_breakdown: list[MonthlyBreakdown]
    category_breakdown: dict[MedicalCategory, CategoryTotal]
    disclaimer: str = DISCLAIMER


class EstimateThresholds(LedgerModel):
    medical_expense_threshold: Money
    threshold_percent: Money
    fixed_cap: Money


class EstimateAmounts(LedgerModel):
    total_medical_expenses: Money
    total_eligible_amount: Money
    total_eligible_expenses: Money
    total_claimable: Money


class EstimateSavings(LedgerModel):
    tax_rate: Money
    estimated_tax_savings: Money


class DeductionEstimate(LedgerModel):
    """Deduction breakdown and a rough tax savings figure."""

    year: int
    income: Money
    claiming_for: ClaimingFor
    claim_line: str
    thresholds: EstimateThresholds
    amounts: EstimateAmounts
    estimates: EstimateSavings
    disclaimer: str = DISCLAIMER


# =============================================================================
# Service
# =============================================================================


class TaxSummaryService:
    """Read-only façade answering "what can this user deduct for year Y"."""

    def __init__(
        self,
        reader: LedgerReader,
        estimated_tax_rate: Decimal,
        config_resolver: Callable[[int], TaxYearConfig] = get_tax_year_config,
    ) -> None:
        self._reader = reader
        self._estimated_tax_rate = estimated_tax_rate
        self._config_resolver = config_resolver

    async def _aggregate(self, user_id: str, year: int) -> YearAggregate:
        period = tax_year_range(year)
        receipts = await self._reader.find_receipts(user_id, period)
        expenses = await self._reader.find_medical_expenses(user_id, period)
        return aggregate_tax_year(year, receipts, expenses)

    async def compute_tax_summary(self, user_id: str, year: int) -> TaxSummary:
        """Summarize a user's year.

        A missing profile or income does not fail the summary; the deductible
        amount is left empty and ``income_status`` is ``"missing"``.
        """
        profile = await self._reader.find_tax_profile(user_id, year)
        aggregate = await self._aggregate(user_id, year)

        claiming_for = profile.claiming_for if profile else ClaimingFor.SELF
        income = profile.claiming_income() if profile else None

        deduction: DeductionResult | None = None
        if income is not None:
            deduction = calculate_deduction(
                aggregate.total_eligible_amount,
                aggregate.total_medical_expenses,
                income,
                self._config_resolver(year),
            )

        summary = TaxSummary(
            year=year,
            total_eligible_amount=aggregate.total_eligible_amount,
            total_medical_expenses=aggregate.total_medical_expenses,
            total_receipt_amount=aggregate.total_receipt_amount,
            total_eligible_expenses=quantize_money(
                aggregate.total_eligible_amount + aggregate.total_medical_expenses
            ),
            total_deductible=deduction.deductible_amount if deduction else None,
            threshold=deduction.threshold if deduction else None,
            receipts_count=aggregate.receipts_count,
            medical_expenses_count=aggregate.medical_expenses_count,
            claiming_for=claiming_for,
            income_status="complete" if deduction else "missing",
            monthly_breakdown=[
                MonthlyBreakdown(
                    month=bucket.month,
                    month_name=bucket.month_name,
                    count=bucket.count,
                    amount=quantize_money(bucket.amount),
                    receipts=ReceiptMonth(
                        count=bucket.receipts.count,
                        total_amount=quantize_money(bucket.receipts.total_amount),
                        eligible_amount=quantize_money(bucket.receipts.eligible_amount),
                    ),
                    medical=MedicalMonth(
                        count=bucket.medical.count,
                        total_amount=quantize_money(bucket.medical.total_amount),
                    ),
                )
                for bucket in aggregate.monthly
            ],
            category_breakdown={
                category: CategoryTotal(
                    count=bucket.count,
                    total_amount=quantize_money(bucket.total_amount),
                )
                for category, bucket in aggregate.by_category.items()
            },
        )
        logger.info(
            "tax_summary_computed",
            year=year,
            receipts_count=summary.receipts_count,
            medical_expenses_count=summary.medical_expenses_count,
            income_status=summary.income_status,
        )
        return summary

    async def compute_deduction_estimate(
        self,
        user_id: str,
        year: int,
        income_override: Decimal | None = None,
    ) -> DeductionEstimate:
        """Estimate the deduction and the tax it saves.

        Args:
            user_id: Requesting user.
            year: Tax year.
            income_override: Income to use instead of the saved profile.

        Raises:
            IncompleteInputError: If no income is available from either the
                override or the profile.
        """
        profile = await self._reader.find_tax_profile(user_id, year)
        claiming_for = profile.claiming_for if profile else ClaimingFor.SELF

        income = income_override
        if income is None and profile is not None:
            income = profile.claiming_income()
        if income is None:
            field_name = (
                "dependantIncome" if claiming_for is ClaimingFor.DEPENDANT else "netIncome"
            )
            raise IncompleteInputError(
                f"Save a tax profile with {field_name} for {year} or pass an income",
                missing=[field_name],
            )

        config = self._config_resolver(year)
        aggregate = await self._aggregate(user_id, year)
        deduction = calculate_deduction(
            aggregate.total_eligible_amount,
            aggregate.total_medical_expenses,
            income,
            config,
        )

        savings = quantize_money(deduction.deductible_amount * self._estimated_tax_rate)
        logger.info(
            "deduction_estimate_computed",
            year=year,
            income_source="override" if income_override is not None else "profile",
            deductible_amount=deduction.deductible_amount,
        )
        return DeductionEstimate(
            year=year,
            income=income,
            claiming_for=claiming_for,
            claim_line=(
                config.dependant_claim_line
                if claiming_for is ClaimingFor.DEPENDANT
                else config.self_claim_line
            ),
            thresholds=EstimateThresholds(
                medical_expense_threshold=deduction.threshold,
                threshold_percent=deduction.threshold_percent_amount,
                fixed_cap=deduction.fixed_cap,
            ),
            amounts=EstimateAmounts(
                total_medical_expenses=aggregate.total_medical_expenses,
                total_eligible_amount=aggregate.total_eligible_amount,
                total_eligible_expenses=deduction.total_eligible_expenses,
                total_claimable=deduction.deductible_amount,
            ),
            estimates=EstimateSavings(
                tax_rate=self._estimated_tax_rate,
                estimated_tax_savings=savings,
            ),
        )
