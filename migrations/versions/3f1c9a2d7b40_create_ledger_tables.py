"""create_ledger_tables

Revision ID: 3f1c9a2d7b40
Revises:
Create Date: 2026-10-19 09:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2d7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create users, products, receipts, receipt items, medical expenses and tax profiles."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255)),
        *_timestamps(),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("brand", sa.String(255)),
        sa.Column("is_gluten_free", sa.Boolean(), nullable=False),
        sa.Column("price", MONEY),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_products_user_id", "products", ["user_id"])
    op.create_index("ix_products_category", "products", ["category"])

    op.create_table(
        "receipts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("store_name", sa.String(255), nullable=False),
        sa.Column("receipt_date", sa.Date(), nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("eligible_amount", MONEY, nullable=False),
        sa.Column("image_url", sa.String(1000)),
        sa.Column("image_file_name", sa.String(255)),
        sa.Column("image_mime_type", sa.String(100)),
        sa.Column("image_size", sa.Integer()),
        *_timestamps(),
    )
    op.create_index("ix_receipts_user_id", "receipts", ["user_id"])
    op.create_index("ix_receipts_receipt_date", "receipts", ["receipt_date"])

    op.create_table(
        "receipt_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "receipt_id",
            sa.String(36),
            sa.ForeignKey("receipts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("is_eligible", sa.Boolean(), nullable=False),
        sa.Column(
            "purchased_product_id",
            sa.String(36),
            sa.ForeignKey("products.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "comparison_product_id",
            sa.String(36),
            sa.ForeignKey("products.id", ondelete="SET NULL"),
        ),
        sa.Column("comparison_unit_price", MONEY),
        sa.Column("comparison_price", MONEY),
        sa.Column("incremental_cost", MONEY),
    )
    op.create_index("ix_receipt_items_receipt_id", "receipt_items", ["receipt_id"])

    op.create_table(
        "medical_expenses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "consultation",
                "medication",
                "test",
                "supplement",
                "other",
                name="medical_category",
            ),
            nullable=False,
        ),
        sa.Column("provider", sa.String(255)),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_medical_expenses_user_id", "medical_expenses", ["user_id"])
    op.create_index("ix_medical_expenses_date", "medical_expenses", ["date"])

    op.create_table(
        "tax_profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("net_income", MONEY),
        sa.Column("dependant_income", MONEY),
        sa.Column(
            "claiming_for",
            sa.Enum("self", "dependant", name="claiming_for"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "year", name="uq_tax_profiles_user_year"),
    )


def downgrade() -> None:
    """Drop all ledger tables."""
    op.drop_table("tax_profiles")
    op.drop_index("ix_medical_expenses_date", table_name="medical_expenses")
    op.drop_index("ix_medical_expenses_user_id", table_name="medical_expenses")
    op.drop_table("medical_expenses")
    op.drop_index("ix_receipt_items_receipt_id", table_name="receipt_items")
    op.drop_table("receipt_items")
    op.drop_index("ix_receipts_receipt_date", table_name="receipts")
    op.drop_index("ix_receipts_user_id", table_name="receipts")
    op.drop_table("receipts")
    op.drop_index("ix_products_category", table_name="products")
    op.drop_index("ix_products_user_id", table_name="products")
    op.drop_table("products")
    op.drop_table("users")
    sa.Enum(name="claiming_for").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="medical_category").drop(op.get_bind(), checkfirst=True)
