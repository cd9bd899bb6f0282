"""Create carbon market core tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Orders and order lines (append-only), SQL cart store, holdings cache and
the hash-chained certificate log.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


line_outcome = sa.Enum(
    "SETTLED", "REJECTED", "FAILED", "CANCELLED",
    name="order_line_outcome",
    create_constraint=True,
)


def upgrade() -> None:
    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("buyer_id", sa.String(64), nullable=False),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("cart_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_buyer_id", "orders", ["buyer_id"])
    op.create_index("ix_orders_org_id", "orders", ["org_id"])
    op.create_index("ix_orders_cart_id", "orders", ["cart_id"])

    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("class_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("outcome", line_outcome, nullable=False),
        sa.Column("receipt_id", sa.String(128), nullable=True),
        sa.Column("error_code", sa.String(64), nullable=True),
        sa.Column("error_detail", sa.String(500), nullable=True),
        sa.Column("class_snapshot", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["orders.id"],
            name="fk_order_lines_order_id",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("order_id", "position", name="uq_order_lines_order_position"),
        sa.UniqueConstraint("receipt_id", name="uq_order_lines_receipt_id"),
    )
    op.create_index("ix_order_lines_order_id", "order_lines", ["order_id"])
    op.create_index("ix_order_lines_class_id", "order_lines", ["class_id"])

    op.create_table(
        "cart_sessions",
        sa.Column("session_key", sa.String(64), nullable=False),
        sa.Column("cart_id", sa.String(64), nullable=False),
        sa.Column("checkout_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("session_key"),
    )

    op.create_table(
        "cart_lines",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_key", sa.String(64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("class_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("class_snapshot", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["session_key"],
            ["cart_sessions.session_key"],
            name="fk_cart_lines_session_key",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("session_key", "class_id", name="uq_cart_lines_session_class"),
    )
    op.create_index("ix_cart_lines_session_key", "cart_lines", ["session_key"])

    op.create_table(
        "credit_holdings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("class_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refreshed_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "class_id", name="uq_credit_holdings_org_class"),
        sa.CheckConstraint("quantity >= 0", name="ck_credit_holdings_quantity_non_negative"),
    )
    op.create_index("ix_credit_holdings_org_id", "credit_holdings", ["org_id"])

    op.create_table(
        "certificates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("certificate_id", sa.String(128), nullable=False),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("class_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("purpose_hash", sa.String(66), nullable=False),
        sa.Column("beneficiary_hash", sa.String(66), nullable=False),
        sa.Column("memo", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("record_hash", sa.String(64), nullable=False),
        sa.Column("previous_hash", sa.String(64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("record_hash", name="uq_certificates_record_hash"),
    )
    op.create_index("ix_certificates_certificate_id", "certificates", ["certificate_id"], unique=True)
    op.create_index("ix_certificates_org_id", "certificates", ["org_id"])
    op.create_index("ix_certificates_class_id", "certificates", ["class_id"])
    op.create_index("ix_certificates_purpose_hash", "certificates", ["purpose_hash"])
    op.create_index("ix_certificates_beneficiary_hash", "certificates", ["beneficiary_hash"])
    op.create_index("ix_certificates_previous_hash", "certificates", ["previous_hash"])


def downgrade() -> None:
    op.drop_index("ix_certificates_previous_hash", table_name="certificates")
    op.drop_index("ix_certificates_beneficiary_hash", table_name="certificates")
    op.drop_index("ix_certificates_purpose_hash", table_name="certificates")
    op.drop_index("ix_certificates_class_id", table_name="certificates")
    op.drop_index("ix_certificates_org_id", table_name="certificates")
    op.drop_index("ix_certificates_certificate_id", table_name="certificates")
    op.drop_table("certificates")
    op.drop_index("ix_credit_holdings_org_id", table_name="credit_holdings")
    op.drop_table("credit_holdings")
    op.drop_index("ix_cart_lines_session_key", table_name="cart_lines")
    op.drop_table("cart_lines")
    op.drop_table("cart_sessions")
    op.drop_index("ix_order_lines_class_id", table_name="order_lines")
    op.drop_index("ix_order_lines_order_id", table_name="order_lines")
    op.drop_table("order_lines")
    op.drop_index("ix_orders_cart_id", table_name="orders")
    op.drop_index("ix_orders_org_id", table_name="orders")
    op.drop_index("ix_orders_buyer_id", table_name="orders")
    op.drop_table("orders")
    line_outcome.drop(op.get_bind(), checkfirst=True)
