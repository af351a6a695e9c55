"""Tests for year aggregation."""

from datetime import date
from decimal import Decimal

from celiac_ledger.domain.models import MedicalCategory, MedicalExpense, Receipt
from celiac_ledger.ledger.aggregation import (
    aggregate_tax_year,
    listing_range,
    month_range,
    tax_year_range,
)


def _receipt(receipt_date: date, total: str, eligible: str) -> Receipt:
    return Receipt(
        id=f"r-{receipt_date.isoformat()}-{total}",
        store_name="Loblaws",
        receipt_date=receipt_date,
        total_amount=Decimal(total),
        eligible_amount=Decimal(eligible),
    )


def _expense(
    expense_date: date,
    amount: str,
    category: MedicalCategory = MedicalCategory.CONSULTATION,
) -> MedicalExpense:
    return MedicalExpense(
        id=f"m-{expense_date.isoformat()}-{amount}",
        description="Gastroenterologist visit",
        amount=Decimal(amount),
        date=expense_date,
        category=category,
    )


class TestDateRanges:
    def test_tax_year_range_is_calendar_year(self) -> None:
        period = tax_year_range(2024)
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 12, 31)
        assert date(2024, 12, 31) in period
        assert date(2025, 1, 1) not in period

    def test_month_range_handles_leap_february(self) -> None:
        assert month_range(2024, 2).end == date(2024, 2, 29)

    def test_listing_range(self) -> None:
        assert listing_range(None, None) is None
        assert listing_range(2024, None) == tax_year_range(2024)
        assert listing_range(2024, 3) == month_range(2024, 3)


class TestAggregateTaxYear:
    def test_single_march_receipt_lands_in_march(self) -> None:
        aggregate = aggregate_tax_year(
            2024, [_receipt(date(2024, 3, 14), "60.00", "42.00")], []
        )

        assert len(aggregate.monthly) == 12
        march = aggregate.monthly[2]
        assert march.month == 3
        assert march.month_name == "March"
        assert march.count == 1
        assert march.amount == Decimal("42.00")
        for bucket in aggregate.monthly:
            if bucket.month != 3:
                assert bucket.count == 0
                assert bucket.amount == Decimal("0")

    def test_totals_and_counts(self) -> None:
        receipts = [
            _receipt(date(2024, 1, 5), "50.00", "20.00"),
            _receipt(date(2024, 6, 30), "30.25", "10.10"),
        ]
        expenses = [
            _expense(date(2024, 6, 1), "120.00"),
            _expense(date(2024, 11, 20), "35.50", MedicalCategory.SUPPLEMENT),
        ]
        aggregate = aggregate_tax_year(2024, receipts, expenses)

        assert aggregate.receipts_count == 2
        assert aggregate.medical_expenses_count == 2
        assert aggregate.total_receipt_amount == Decimal("80.25")
        assert aggregate.total_eligible_amount == Decimal("30.10")
        assert aggregate.total_medical_expenses == Decimal("155.50")

        june = aggregate.monthly[5]
        assert june.receipts.count == 1
        assert june.medical.count == 1
        assert june.amount == Decimal("130.10")

    def test_monthly_buckets_add_up_to_year_totals(self) -> None:
        receipts = [
            _receipt(date(2024, month, 10), "10.00", "4.00") for month in range(1, 13)
        ]
        expenses = [_expense(date(2024, 2, 2), "99.99")]
        aggregate = aggregate_tax_year(2024, receipts, expenses)

        assert sum(bucket.count for bucket in aggregate.monthly) == 13
        assert sum(bucket.amount for bucket in aggregate.monthly) == (
            aggregate.total_eligible_amount + aggregate.total_medical_expenses
        )

    def test_category_breakdown_only_lists_used_categories(self) -> None:
        expenses = [
            _expense(date(2024, 4, 1), "40.00", MedicalCategory.MEDICATION),
            _expense(date(2024, 5, 1), "60.00", MedicalCategory.MEDICATION),
            _expense(date(2024, 5, 2), "15.00", MedicalCategory.TEST),
        ]
        aggregate = aggregate_tax_year(2024, [], expenses)

        assert set(aggregate.by_category) == {MedicalCategory.MEDICATION, MedicalCategory.TEST}
        assert aggregate.by_category[MedicalCategory.MEDICATION].count == 2
        assert aggregate.by_category[MedicalCategory.MEDICATION].total_amount == Decimal("100.00")

    def test_records_outside_year_are_ignored(self) -> None:
        aggregate = aggregate_tax_year(
            2024,
            [_receipt(date(2023, 12, 31), "10.00", "5.00")],
            [_expense(date(2025, 1, 1), "10.00")],
        )
        assert aggregate.receipts_count == 0
        assert aggregate.medical_expenses_count == 0
        assert aggregate.total_eligible_amount == Decimal("0.00")
