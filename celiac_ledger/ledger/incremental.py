"""Incremental cost of gluten-free purchases.

CRA allows the *extra* cost of a gluten-free product over its regular
equivalent to be claimed as a medical expense. This module provides pure
functions for:
- Per-line eligible amount (with or without a comparison price)
- Receipt-level total and eligible amount recalculation

All monetary values use Decimal for precision.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from celiac_ledger.core.errors import InvalidInputError
from celiac_ledger.domain.models import MAX_MONEY, ZERO, ReceiptItemDraft, quantize_money


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class LineAmounts:
    """Derived amounts for one receipt line.

    Attributes:
        line_total: Unit price times quantity.
        comparison_line_total: Comparison unit price times quantity, if any.
        incremental_cost: ``line_total - comparison_line_total`` (may be
            negative), or None without a comparison.
        eligible_amount: Portion of the line that counts toward the deduction.
    """

    line_total: Decimal
    comparison_line_total: Decimal | None
    incremental_cost: Decimal | None
    eligible_amount: Decimal


@dataclass(frozen=True)
class ReceiptTotals:
    """Receipt totals derived from its items.

    Attributes:
        total_amount: Sum of all line totals.
        eligible_amount: Sum of eligible amounts.
    """

    total_amount: Decimal
    eligible_amount: Decimal


# =============================================================================
# Line Calculation
# =============================================================================


def calculate_line(
    unit_price: Decimal,
    quantity: int,
    is_eligible: bool,
    comparison_unit_price: Decimal | None = None,
) -> LineAmounts:
    """Compute the eligible amount for a purchased line.

    Args:
        unit_price: Price of one gluten-free unit.
        quantity: Number of units bought (at least 1).
        is_eligible: Whether the line counts toward the deduction at all.
        comparison_unit_price: Price of one unit of the regular equivalent.

    Returns:
        LineAmounts with the line total and eligible amount.

    Raises:
        InvalidInputError: On a negative price or a quantity below 1.

    Example:
        >>> calculate_line(Decimal("5"), 3, True, Decimal("6")).eligible_amount
        Decimal('0.00')
    """
    if unit_price < 0:
        raise InvalidInputError("Item prices cannot be negative")
    if comparison_unit_price is not None and comparison_unit_price < 0:
        raise InvalidInputError("Comparison prices cannot be negative")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidInputError("Quantity must be a whole number of at least 1")

    line_total = quantize_money(unit_price * quantity)
    if line_total > MAX_MONEY:
        raise InvalidInputError("Line total is too large to record")

    if comparison_unit_price is None:
        comparison_line_total = None
        incremental_cost = None
        eligible = line_total
    else:
        comparison_line_total = quantize_money(comparison_unit_price * quantity)
        incremental_cost = line_total - comparison_line_total
        # A gluten-free item no dearer than its regular counterpart adds nothing.
        eligible = max(ZERO, incremental_cost)

    return LineAmounts(
        line_total=line_total,
        comparison_line_total=comparison_line_total,
        incremental_cost=incremental_cost,
        eligible_amount=quantize_money(eligible) if is_eligible else quantize_money(ZERO),
    )


def calculate_item(item: ReceiptItemDraft) -> LineAmounts:
    """Compute line amounts for a receipt item draft."""
    return calculate_line(
        unit_price=item.unit_price,
        quantity=item.quantity,
        is_eligible=item.is_eligible,
        comparison_unit_price=item.comparison_unit_price,
    )


# =============================================================================
# Receipt Recalculation
# =============================================================================


def recalculate_receipt_totals(items: Iterable[ReceiptItemDraft]) -> ReceiptTotals:
    """Derive a receipt's total and eligible amounts from its items.

    Pure function: the same items always yield the same totals.

    Args:
        items: The receipt's complete item list.

    Returns:
        ReceiptTotals where eligible_amount never exceeds total_amount.
    """
    total = ZERO
    eligible = ZERO
    for item in items:
        amounts = calculate_item(item)
        total += amounts.line_total
        eligible += amounts.eligible_amount

    if total > MAX_MONEY:
        raise InvalidInputError("Receipt total is too large to record")

    return ReceiptTotals(
        total_amount=quantize_money(total),
        eligible_amount=quantize_money(eligible),
    )
