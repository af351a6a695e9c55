"""Domain records for purchases, receipts, medical expenses and tax profiles.

These models are the currency of the calculation core. ORM rows are
converted into them by the repository, and the API layer builds its
request/response payloads on top of them.

Money is always ``Decimal``. On the wire it is written as a JSON number
rather than pydantic's default string encoding.
"""

from __future__ import annotations

import datetime
import enum
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from celiac_ledger.core.errors import InvalidInputError

CENT = Decimal("0.01")
ZERO = Decimal("0")
# Largest amount a Numeric(12, 2) column holds.
MAX_MONEY = Decimal("9999999999.99")


def quantize_money(value: Decimal) -> Decimal:
    """Round a money amount to cents.

    Raises:
        InvalidInputError: If the amount has too many digits to round.
    """
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidInputError("Amount is too large") from exc


Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]
"""Decimal amount serialized as a JSON number."""

NonNegativeMoney = Annotated[Money, Field(ge=0, le=MAX_MONEY)]


class LedgerModel(BaseModel):
    """Base for domain and API models: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        from_attributes=True,
    )


# =============================================================================
# Enums
# =============================================================================


class MedicalCategory(str, enum.Enum):
    """Categories a medical expense can be filed under."""

    CONSULTATION = "consultation"
    MEDICATION = "medication"
    TEST = "test"
    SUPPLEMENT = "supplement"
    OTHER = "other"


class ClaimingFor(str, enum.Enum):
    """Whose income the deduction threshold is computed against."""

    SELF = "self"
    DEPENDANT = "dependant"


# =============================================================================
# Ownership
# =============================================================================


class OwnedBy(BaseModel):
    """Product belongs to a single user and may be edited in place."""

    kind: Literal["owned"] = "owned"
    user_id: str


class PublicOwner(BaseModel):
    """Product belongs to the shared catalogue and is read-only to users."""

    kind: Literal["public"] = "public"


ProductOwner = Annotated[Union[OwnedBy, PublicOwner], Field(discriminator="kind")]


# =============================================================================
# Products
# =============================================================================


class Product(LedgerModel):
    """A product the user buys or compares against."""

    id: str
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    brand: str | None = None
    is_gluten_free: bool = True
    price: NonNegativeMoney | None = None
    notes: str | None = None
    owner: ProductOwner = Field(exclude=True)

    @property
    def is_public(self) -> bool:
        return isinstance(self.owner, PublicOwner)


class ProductDraft(LedgerModel):
    """Fields for a new product."""

    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    brand: str | None = None
    is_gluten_free: bool = True
    price: NonNegativeMoney | None = None
    notes: str | None = None


class ProductPatch(LedgerModel):
    """Partial product update; only explicitly supplied fields apply."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    brand: str | None = None
    is_gluten_free: bool | None = None
    price: NonNegativeMoney | None = None
    notes: str | None = None


# =============================================================================
# Receipts
# =============================================================================


class ReceiptItemDraft(LedgerModel):
    """A purchased line as entered by the user.

    ``unit_price`` and ``comparison_unit_price`` are per-unit; line totals are
    derived by the calculator.
    """

    name: str = Field(min_length=1, max_length=255)
    unit_price: NonNegativeMoney
    # Stored in a 32-bit integer column.
    quantity: int = Field(default=1, ge=1, le=2_147_483_647)
    is_eligible: bool = True
    purchased_product_id: str | None = None
    comparison_product_id: str | None = None
    comparison_unit_price: NonNegativeMoney | None = None


class ReceiptItem(LedgerModel):
    """A stored receipt line.

    ``price`` and ``comparison_price`` are line totals (unit price times
    quantity), not unit prices.
    """

    id: str
    name: str
    unit_price: Money
    quantity: int = Field(ge=1)
    is_eligible: bool
    purchased_product_id: str | None = None
    comparison_product_id: str | None = None
    comparison_unit_price: Money | None = None
    price: Money
    comparison_price: Money | None = None
    incremental_cost: Money | None = None


class ReceiptImage(LedgerModel):
    """Reference to an uploaded receipt image."""

    image_url: str | None = None
    image_file_name: str | None = None
    image_mime_type: str | None = None
    image_size: int | None = Field(default=None, ge=0)

    @field_validator("image_mime_type")
    @classmethod
    def lower_mime_type(cls, value: str | None) -> str | None:
        return value.lower() if value else value


class ReceiptDraft(ReceiptImage):
    """Fields for a new receipt.

    Totals are only honoured when no items are supplied; otherwise they are
    recomputed from the items.
    """

    store_name: str = Field(min_length=1, max_length=255)
    receipt_date: datetime.date
    total_amount: NonNegativeMoney | None = None
    eligible_amount: NonNegativeMoney | None = None
    items: list[ReceiptItemDraft] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_amounts(self) -> ReceiptDraft:
        """Require totals for un-itemized receipts and keep them ordered."""
        if not self.items:
            if self.total_amount is None or self.eligible_amount is None:
                raise ValueError(
                    "Total amount and eligible amount are required when no items are given"
                )
        if (
            self.total_amount is not None
            and self.eligible_amount is not None
            and self.eligible_amount > self.total_amount
        ):
            raise ValueError("Eligible amount cannot exceed total amount")
        return self


class ReceiptPatch(ReceiptImage):
    """Partial receipt update.

    Supplying ``items`` replaces the whole item list.
    """

    store_name: str | None = Field(default=None, min_length=1, max_length=255)
    receipt_date: datetime.date | None = None
    total_amount: NonNegativeMoney | None = None
    eligible_amount: NonNegativeMoney | None = None
    items: list[ReceiptItemDraft] | None = None

    @model_validator(mode="after")
    def validate_amounts(self) -> ReceiptPatch:
        if (
            self.total_amount is not None
            and self.eligible_amount is not None
            and self.eligible_amount > self.total_amount
        ):
            raise ValueError("Eligible amount cannot exceed total amount")
        return self


class Receipt(ReceiptImage):
    """A stored receipt with its items."""

    id: str
    store_name: str
    receipt_date: datetime.date
    total_amount: NonNegativeMoney
    eligible_amount: NonNegativeMoney
    items: list[ReceiptItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_amounts(self) -> Receipt:
        if self.eligible_amount > self.total_amount:
            raise ValueError("Eligible amount cannot exceed total amount")
        return self


# =============================================================================
# Medical expenses
# =============================================================================


class MedicalExpenseDraft(LedgerModel):
    """Fields for a new medical expense."""

    description: str = Field(min_length=1, max_length=500)
    amount: NonNegativeMoney
    date: datetime.date
    category: MedicalCategory
    provider: str | None = None
    notes: str | None = None


class MedicalExpensePatch(LedgerModel):
    """Partial medical expense update."""

    description: str | None = Field(default=None, min_length=1, max_length=500)
    amount: NonNegativeMoney | None = None
    date: datetime.date | None = None
    category: MedicalCategory | None = None
    provider: str | None = None
    notes: str | None = None


class MedicalExpense(MedicalExpenseDraft):
    """A stored medical expense."""

    id: str


# =============================================================================
# Tax profile
# =============================================================================


class TaxProfileFields(LedgerModel):
    """Income inputs saved per user and year."""

    net_income: NonNegativeMoney | None = None
    dependant_income: NonNegativeMoney | None = None
    claiming_for: ClaimingFor = ClaimingFor.SELF

    def claiming_income(self) -> Decimal | None:
        """Income of the party the deduction is claimed against."""
        if self.claiming_for is ClaimingFor.DEPENDANT:
            return self.dependant_income
        return self.net_income


class TaxProfile(TaxProfileFields):
    """A stored tax profile."""

    id: str
    year: int
