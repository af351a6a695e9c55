"""Year-level aggregation of receipts and medical expenses.

Produces the figures the tax summary is built from: year totals, a
twelve-month breakdown and a medical expense category breakdown. Monthly
buckets partition the year, so their counts and amounts always add up to
the year totals.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from celiac_ledger.domain.models import (
    ZERO,
    MedicalCategory,
    MedicalExpense,
    Receipt,
    quantize_money,
)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __contains__(self, value: date) -> bool:
        return self.start <= value <= self.end


def tax_year_range(year: int) -> DateRange:
    """Return January 1 through December 31 of ``year``."""
    return DateRange(start=date(year, 1, 1), end=date(year, 12, 31))


@dataclass
class ReceiptBucket:
    count: int = 0
    total_amount: Decimal = ZERO
    eligible_amount: Decimal = ZERO


@dataclass
class MedicalBucket:
    count: int = 0
    total_amount: Decimal = ZERO


@dataclass
class MonthlyBucket:
    """Activity in one calendar month.

    Attributes:
        month: 1 for January through 12 for December.
        month_name: English month name.
        receipts: Receipt count and amounts for the month.
        medical: Medical expense count and amount for the month.
    """

    month: int
    month_name: str
    receipts: ReceiptBucket = field(default_factory=ReceiptBucket)
    medical: MedicalBucket = field(default_factory=MedicalBucket)

    @property
    def count(self) -> int:
        return self.receipts.count + self.medical.count

    @property
    def amount(self) -> Decimal:
        """Deductible-basis amount: eligible receipt amount plus medical."""
        return self.receipts.eligible_amount + self.medical.total_amount


@dataclass
class YearAggregate:
    """Totals and breakdowns for one tax year.

    Attributes:
        year: The tax year.
        total_receipt_amount: Sum of receipt totals.
        total_eligible_amount: Sum of receipt eligible amounts.
        total_medical_expenses: Sum of medical expense amounts.
        receipts_count: Number of receipts in the year.
        medical_expenses_count: Number of medical expenses in the year.
        monthly: Exactly twelve buckets, January first.
        by_category: Medical expense totals keyed by category.
    """

    year: int
    total_receipt_amount: Decimal
    total_eligible_amount: Decimal
    total_medical_expenses: Decimal
    receipts_count: int
    medical_expenses_count: int
    monthly: list[MonthlyBucket]
    by_category: dict[MedicalCategory, MedicalBucket]


def aggregate_tax_year(
    year: int,
    receipts: Iterable[Receipt],
    medical_expenses: Iterable[MedicalExpense],
) -> YearAggregate:
    """Aggregate receipts and medical expenses dated within ``year``.

    Records outside the calendar year are skipped.

    Args:
        year: Tax year to aggregate.
        receipts: Candidate receipts.
        medical_expenses: Candidate medical expenses.

    Returns:
        YearAggregate with totals, monthly and category breakdowns.
    """
    period = tax_year_range(year)
    # Index 0 is January.
    monthly = [
        MonthlyBucket(month=index + 1, month_name=calendar.month_name[index + 1])
        for index in range(12)
    ]
    by_category: dict[MedicalCategory, MedicalBucket] = {}

    receipts_count = 0
    total_receipt_amount = ZERO
    total_eligible_amount = ZERO
    for receipt in receipts:
        if receipt.receipt_date not in period:
            continue
        bucket = monthly[receipt.receipt_date.month - 1].receipts
        bucket.count += 1
        bucket.total_amount += receipt.total_amount
        bucket.eligible_amount += receipt.eligible_amount
        receipts_count += 1
        total_receipt_amount += receipt.total_amount
        total_eligible_amount += receipt.eligible_amount

    medical_count = 0
    total_medical = ZERO
    for expense in medical_expenses:
        if expense.date not in period:
            continue
        bucket = monthly[expense.date.month - 1].medical
        bucket.count += 1
        bucket.total_amount += expense.amount
        category = by_category.setdefault(expense.category, MedicalBucket())
        category.count += 1
        category.total_amount += expense.amount
        medical_count += 1
        total_medical += expense.amount

    return YearAggregate(
        year=year,
        total_receipt_amount=quantize_money(total_receipt_amount),
        total_eligible_amount=quantize_money(total_eligible_amount),
        total_medical_expenses=quantize_money(total_medical),
        receipts_count=receipts_count,
        medical_expenses_count=medical_count,
        monthly=monthly,
        by_category=by_category,
    )


def month_range(year: int, month: int) -> DateRange:
    """Return the first through last day of a calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(start=date(year, month, 1), end=date(year, month, last_day))


def listing_range(year: int | None, month: int | None) -> DateRange | None:
    """Date filter for list views: a month, a whole year, or nothing."""
    if year is None:
        return None
    if month is None:
        return tax_year_range(year)
    return month_range(year, month)
