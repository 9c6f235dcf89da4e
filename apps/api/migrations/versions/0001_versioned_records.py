"""versioned records v1: users / orders (append-only) + logical id allocators

- Adds:
  - user_ids, order_ids (autoincrement key = logical id)
  - users, orders (append-only: no UPDATE/DELETE; one 'active' row per logical id)

Revision ID: 0001_versioned_records
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_versioned_records"
down_revision = None
branch_labels = None
depends_on = None

APPEND_ONLY_TABLES = ("users", "orders")


def _is_sqlite() -> bool:
    return op.get_bind().dialect.name == "sqlite"


def upgrade() -> None:
    # ---- logical id allocators ----
    op.create_table(
        "user_ids",
        sa.Column("logical_id", sa.Integer(), primary_key=True),
        sa.Column("allocated_at", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "order_ids",
        sa.Column("logical_id", sa.Integer(), primary_key=True),
        sa.Column("allocated_at", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
    )

    # ---- users ----
    op.create_table(
        "users",
        sa.Column("record_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),  # active|updated|deleted
        sa.Column("created_at", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_user_id", "users", ["user_id"])
    op.create_index("ix_users_status", "users", ["status"])
    op.create_index(
        "uq_users_user_id_active",
        "users",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("status = 'active'"),
        postgresql_where=sa.text("status = 'active'"),
    )

    # ---- orders ----
    op.create_table(
        "orders",
        sa.Column("record_id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("product", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),  # active|updated|deleted
        sa.Column("created_at", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_orders_order_id", "orders", ["order_id"])
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index(
        "uq_orders_order_id_active",
        "orders",
        ["order_id"],
        unique=True,
        sqlite_where=sa.text("status = 'active'"),
        postgresql_where=sa.text("status = 'active'"),
    )

    # ---- append-only invariants (SQLite triggers) ----
    if not _is_sqlite():
        return
    for table in APPEND_ONLY_TABLES:
        op.execute(f"""
        CREATE TRIGGER IF NOT EXISTS trg_{table}_no_update
        BEFORE UPDATE ON {table}
        BEGIN
          SELECT RAISE(ABORT, 'append-only: {table} cannot be updated');
        END;
        """)
        op.execute(f"""
        CREATE TRIGGER IF NOT EXISTS trg_{table}_no_delete
        BEFORE DELETE ON {table}
        BEGIN
          SELECT RAISE(ABORT, 'append-only: {table} cannot be deleted');
        END;
        """)


def downgrade() -> None:
    # drop triggers first
    if _is_sqlite():
        for table in reversed(APPEND_ONLY_TABLES):
            op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_no_delete;")
            op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_no_update;")

    op.drop_index("uq_orders_order_id_active", table_name="orders")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_index("ix_orders_order_id", table_name="orders")
    op.drop_table("orders")

    op.drop_index("uq_users_user_id_active", table_name="users")
    op.drop_index("ix_users_status", table_name="users")
    op.drop_index("ix_users_user_id", table_name="users")
    op.drop_table("users")

    op.drop_table("order_ids")
    op.drop_table("user_ids")
