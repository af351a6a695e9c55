"""Tests for the tax summary service over an in-memory reader."""

from datetime import date
from decimal import Decimal

import pytest

from celiac_ledger.core.errors import IncompleteInputError, InvalidInputError
from celiac_ledger.domain.models import (
    ClaimingFor,
    MedicalCategory,
    MedicalExpense,
    Receipt,
    TaxProfile,
)
from celiac_ledger.ledger.aggregation import DateRange
from celiac_ledger.ledger.summary import DISCLAIMER, TaxSummaryService


class FakeLedgerReader:
    """In-memory stand-in for the repository."""

    def __init__(
        self,
        receipts: list[Receipt] | None = None,
        expenses: list[MedicalExpense] | None = None,
        profile: TaxProfile | None = None,
    ) -> None:
        self.receipts = receipts or []
        self.expenses = expenses or []
        self.profile = profile

    async def find_receipts(self, user_id: str, date_range: DateRange) -> list[Receipt]:
        return [r for r in self.receipts if r.receipt_date in date_range]

    async def find_medical_expenses(
        self, user_id: str, date_range: DateRange
    ) -> list[MedicalExpense]:
        return [e for e in self.expenses if e.date in date_range]

    async def find_tax_profile(self, user_id: str, year: int) -> TaxProfile | None:
        if self.profile is not None and self.profile.year == year:
            return self.profile
        return None


@pytest.fixture
def receipts() -> list[Receipt]:
    return [
        Receipt(
            id="r1",
            store_name="Metro",
            receipt_date=date(2024, 3, 14),
            total_amount=Decimal("1400.00"),
            eligible_amount=Decimal("1000.00"),
        )
    ]


@pytest.fixture
def expenses() -> list[MedicalExpense]:
    return [
        MedicalExpense(
            id="m1",
            description="Dietitian",
            amount=Decimal("2000.00"),
            date=date(2024, 7, 2),
            category=MedicalCategory.CONSULTATION,
        )
    ]


def _profile(**fields) -> TaxProfile:
    return TaxProfile(id="p1", year=2024, **fields)


def _service(reader: FakeLedgerReader) -> TaxSummaryService:
    return TaxSummaryService(reader, estimated_tax_rate=Decimal("0.25"))


class TestComputeTaxSummary:
    @pytest.mark.asyncio
    async def test_summary_with_income(self, receipts, expenses) -> None:
        reader = FakeLedgerReader(receipts, expenses, _profile(net_income=Decimal("50000")))
        summary = await _service(reader).compute_tax_summary("u1", 2024)

        assert summary.year == 2024
        assert summary.total_eligible_amount == Decimal("1000.00")
        assert summary.total_medical_expenses == Decimal("2000.00")
        assert summary.total_receipt_amount == Decimal("1400.00")
        assert summary.total_eligible_expenses == Decimal("3000.00")
        assert summary.threshold == Decimal("1500.00")
        assert summary.total_deductible == Decimal("1500.00")
        assert summary.receipts_count == 1
        assert summary.medical_expenses_count == 1
        assert summary.income_status == "complete"
        assert summary.disclaimer == DISCLAIMER

    @pytest.mark.asyncio
    async def test_summary_without_profile_reports_missing_income(
        self, receipts, expenses
    ) -> None:
        summary = await _service(FakeLedgerReader(receipts, expenses)).compute_tax_summary(
            "u1", 2024
        )
        assert summary.income_status == "missing"
        assert summary.total_deductible is None
        assert summary.threshold is None
        assert summary.total_eligible_expenses == Decimal("3000.00")

    @pytest.mark.asyncio
    async def test_dependant_claim_uses_dependant_income(self, receipts, expenses) -> None:
        profile = _profile(
            net_income=Decimal("200000"),
            dependant_income=Decimal("10000"),
            claiming_for=ClaimingFor.DEPENDANT,
        )
        summary = await _service(
            FakeLedgerReader(receipts, expenses, profile)
        ).compute_tax_summary("u1", 2024)

        assert summary.claiming_for is ClaimingFor.DEPENDANT
        assert summary.threshold == Decimal("300.00")
        assert summary.total_deductible == Decimal("2700.00")

    @pytest.mark.asyncio
    async def test_dependant_claim_without_dependant_income_is_missing(
        self, receipts, expenses
    ) -> None:
        profile = _profile(net_income=Decimal("50000"), claiming_for=ClaimingFor.DEPENDANT)
        summary = await _service(
            FakeLedgerReader(receipts, expenses, profile)
        ).compute_tax_summary("u1", 2024)
        assert summary.income_status == "missing"

    @pytest.mark.asyncio
    async def test_year_without_config_still_summarized_when_income_missing(self) -> None:
        expense = MedicalExpense(
            id="m2",
            description="Gastroenterologist",
            amount=Decimal("400.00"),
            date=date(2015, 4, 9),
            category=MedicalCategory.CONSULTATION,
        )
        summary = await _service(FakeLedgerReader(expenses=[expense])).compute_tax_summary(
            "u1", 2015
        )
        assert summary.income_status == "missing"
        assert summary.threshold is None
        assert summary.total_medical_expenses == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_breakdowns(self, receipts, expenses) -> None:
        summary = await _service(FakeLedgerReader(receipts, expenses)).compute_tax_summary(
            "u1", 2024
        )
        assert [month.month for month in summary.monthly_breakdown] == list(range(1, 13))
        assert summary.monthly_breakdown[2].amount == Decimal("1000.00")
        assert summary.monthly_breakdown[6].medical.count == 1
        assert summary.category_breakdown[MedicalCategory.CONSULTATION].total_amount == Decimal(
            "2000.00"
        )

    @pytest.mark.asyncio
    async def test_summary_serializes_camel_case_numbers(self, receipts, expenses) -> None:
        reader = FakeLedgerReader(receipts, expenses, _profile(net_income=Decimal("50000")))
        summary = await _service(reader).compute_tax_summary("u1", 2024)
        payload = summary.model_dump(mode="json", by_alias=True)

        assert payload["totalDeductible"] == 1500.0
        assert payload["incomeStatus"] == "complete"
        assert payload["monthlyBreakdown"][2]["receipts"]["eligibleAmount"] == 1000.0
        assert payload["categoryBreakdown"]["consultation"]["count"] == 1


class TestComputeDeductionEstimate:
    @pytest.mark.asyncio
    async def test_estimate_from_profile(self, receipts, expenses) -> None:
        reader = FakeLedgerReader(receipts, expenses, _profile(net_income=Decimal("50000")))
        estimate = await _service(reader).compute_deduction_estimate("u1", 2024)

        assert estimate.income == Decimal("50000")
        assert estimate.claim_line == "33099"
        assert estimate.thresholds.medical_expense_threshold == Decimal("1500.00")
        assert estimate.thresholds.threshold_percent == Decimal("1500.00")
        assert estimate.thresholds.fixed_cap == Decimal("2759.00")
        assert estimate.amounts.total_eligible_expenses == Decimal("3000.00")
        assert estimate.amounts.total_claimable == Decimal("1500.00")
        assert estimate.estimates.tax_rate == Decimal("0.25")
        assert estimate.estimates.estimated_tax_savings == Decimal("375.00")

    @pytest.mark.asyncio
    async def test_override_income_wins_over_profile(self, receipts, expenses) -> None:
        reader = FakeLedgerReader(receipts, expenses, _profile(net_income=Decimal("50000")))
        estimate = await _service(reader).compute_deduction_estimate(
            "u1", 2024, income_override=Decimal("200000")
        )
        assert estimate.thresholds.medical_expense_threshold == Decimal("2759.00")
        assert estimate.amounts.total_claimable == Decimal("241.00")

    @pytest.mark.asyncio
    async def test_missing_income_raises_incomplete(self, receipts, expenses) -> None:
        with pytest.raises(IncompleteInputError) as exc_info:
            await _service(FakeLedgerReader(receipts, expenses)).compute_deduction_estimate(
                "u1", 2024
            )
        assert exc_info.value.missing == ["netIncome"]

    @pytest.mark.asyncio
    async def test_missing_dependant_income_names_field(self, receipts, expenses) -> None:
        profile = _profile(claiming_for=ClaimingFor.DEPENDANT)
        with pytest.raises(IncompleteInputError) as exc_info:
            await _service(
                FakeLedgerReader(receipts, expenses, profile)
            ).compute_deduction_estimate("u1", 2024)
        assert exc_info.value.missing == ["dependantIncome"]

    @pytest.mark.asyncio
    async def test_dependant_claim_line(self, receipts, expenses) -> None:
        profile = _profile(
            dependant_income=Decimal("10000"), claiming_for=ClaimingFor.DEPENDANT
        )
        estimate = await _service(
            FakeLedgerReader(receipts, expenses, profile)
        ).compute_deduction_estimate("u1", 2024)
        assert estimate.claim_line == "33199"
        assert estimate.claiming_for is ClaimingFor.DEPENDANT

    @pytest.mark.asyncio
    async def test_missing_income_reported_before_year_config(self) -> None:
        with pytest.raises(IncompleteInputError):
            await _service(FakeLedgerReader()).compute_deduction_estimate("u1", 2015)

    @pytest.mark.asyncio
    async def test_year_without_config_rejected_once_income_known(self) -> None:
        with pytest.raises(InvalidInputError, match="No tax configuration"):
            await _service(FakeLedgerReader()).compute_deduction_estimate(
                "u1", 2015, income_override=Decimal("50000")
            )
