"""Deduction calculation core: incremental cost, aggregation, threshold, summary."""

from celiac_ledger.ledger.aggregation import (
    DateRange,
    MonthlyBucket,
    YearAggregate,
    aggregate_tax_year,
    tax_year_range,
)
from celiac_ledger.ledger.incremental import (
    LineAmounts,
    ReceiptTotals,
    calculate_item,
    calculate_line,
    recalculate_receipt_totals,
)
from celiac_ledger.ledger.summary import (
    DeductionEstimate,
    LedgerReader,
    TaxSummary,
    TaxSummaryService,
)
from celiac_ledger.ledger.threshold import (
    DeductionResult,
    calculate_deduction,
    calculate_threshold,
)

__all__ = [
    "DateRange",
    "DeductionEstimate",
    "DeductionResult",
    "LedgerReader",
    "LineAmounts",
    "MonthlyBucket",
    "ReceiptTotals",
    "TaxSummary",
    "TaxSummaryService",
    "YearAggregate",
    "aggregate_tax_year",
    "calculate_deduction",
    "calculate_item",
    "calculate_line",
    "calculate_threshold",
    "recalculate_receipt_totals",
    "tax_year_range",
]
