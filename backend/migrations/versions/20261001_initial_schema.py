"""Initial schema: tariffs, stations, sessions, catalog, customers, sales, registers

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. TARIFFS
    # ==========================================================================
    op.create_table(
        "tariffs",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("device_type", sa.String(16), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("tariffs", schema=None) as batch_op:
        batch_op.create_index("ix_tariffs_device_type", ["device_type"], unique=False)
        batch_op.create_index("ix_tariffs_position", ["position"], unique=False)

    op.create_table(
        "tariff_ranges",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("tariff_id", sa.String(64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("min_minutes", sa.Integer(), nullable=False),
        sa.Column("max_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint("min_minutes >= 0", name="ck_tariff_ranges_min_nonneg"),
        sa.CheckConstraint("price >= 0", name="ck_tariff_ranges_price_nonneg"),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("tariff_ranges", schema=None) as batch_op:
        batch_op.create_index("ix_tariff_ranges_tariff_id", ["tariff_id"], unique=False)

    # ==========================================================================
    # 2. CUSTOMERS AND CATALOG
    # ==========================================================================
    op.create_table(
        "customers",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("track_stock", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("category", sa.String(64), nullable=False, server_default="General"),
        sa.Column("barcode", sa.String(64), nullable=True),
        sa.Column("distributor", sa.String(128), nullable=True),
        sa.Column("has_warranty", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("warranty_period", sa.String(64), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        sa.CheckConstraint("cost >= 0", name="ck_products_cost_nonneg"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_name", ["name"], unique=False)
        batch_op.create_index("ix_products_barcode", ["barcode"], unique=False)

    # ==========================================================================
    # 3. STATIONS
    # ==========================================================================
    op.create_table(
        "stations",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("device_type", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="AVAILABLE"),
        sa.Column("tariff_id", sa.String(64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("stations", schema=None) as batch_op:
        batch_op.create_index("ix_stations_device_type", ["device_type"], unique=False)
        batch_op.create_index("ix_stations_status", ["status"], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sale_type", sa.String(16), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=True),
        sa.Column("total", sa.Numeric(14, 3), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_sales_sale_type", ["sale_type"], unique=False)
        batch_op.create_index("ix_sales_payment_method", ["payment_method"], unique=False)
        batch_op.create_index("ix_sales_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_sales_type_created", ["sale_type", "created_at"], unique=False)

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("product_ref", sa.String(64), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price_at_sale", sa.Numeric(14, 3), nullable=False),
        sa.Column("cost_at_sale", sa.Numeric(14, 3), nullable=True),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        batch_op.create_index("ix_sale_items_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_items_product_ref", ["product_ref"], unique=False)

    # ==========================================================================
    # 5. SESSIONS
    # ==========================================================================
    op.create_table(
        "station_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("station_id", sa.String(64), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("customer_id", sa.String(64), nullable=True),
        sa.Column("customer_name", sa.String(128), nullable=True),
        sa.Column("session_type", sa.String(8), nullable=False),
        sa.Column("prepaid_minutes", sa.Integer(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("sale_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["station_id"], ["stations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("station_sessions", schema=None) as batch_op:
        batch_op.create_index("ix_station_sessions_station_id", ["station_id"], unique=False)
        batch_op.create_index("ix_station_sessions_station_open", ["station_id", "ended_at"], unique=False)

    op.create_table(
        "session_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(8), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(kind = 'CATALOG' AND product_id IS NOT NULL) OR (kind = 'CUSTOM' AND product_id IS NULL)",
            name="ck_session_items_kind_product",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_session_items_quantity_pos"),
        sa.ForeignKeyConstraint(["session_id"], ["station_sessions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_items", schema=None) as batch_op:
        batch_op.create_index("ix_session_items_session_id", ["session_id"], unique=False)

    # ==========================================================================
    # 6. LOYALTY LEDGER
    # ==========================================================================
    op.create_table(
        "loyalty_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["session_id"], ["station_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("loyalty_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_loyalty_transactions_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_loyalty_transactions_transaction_type", ["transaction_type"], unique=False)
        batch_op.create_index("ix_loyalty_transactions_session_id", ["session_id"], unique=False)
        batch_op.create_index("ix_loyalty_transactions_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_loyalty_txns_customer_occurred", ["customer_id", "occurred_at"], unique=False)

    # ==========================================================================
    # 7. CASH REGISTER
    # ==========================================================================
    op.create_table(
        "cash_cuts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="OPEN"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("initial_cash", sa.Numeric(12, 2), nullable=False),
        sa.Column("final_cash_system", sa.Numeric(14, 3), nullable=True),
        sa.Column("final_cash_declared", sa.Numeric(12, 2), nullable=True),
        sa.Column("difference", sa.Numeric(14, 3), nullable=True),
        sa.Column("total_sales_cash", sa.Numeric(14, 3), nullable=True),
        sa.Column("total_sales_card", sa.Numeric(14, 3), nullable=True),
        sa.Column("total_sales_transfer", sa.Numeric(14, 3), nullable=True),
        sa.Column("total_expenses", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cash_cuts", schema=None) as batch_op:
        batch_op.create_index("ix_cash_cuts_status", ["status"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("source", sa.String(16), nullable=False, server_default="CASH_REGISTER"),
        sa.Column("affects_cash_box", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("expenses", schema=None) as batch_op:
        batch_op.create_index("ix_expenses_occurred_at", ["occurred_at"], unique=False)


def downgrade():
    op.drop_table("expenses")
    op.drop_table("cash_cuts")
    op.drop_table("loyalty_transactions")
    op.drop_table("session_items")
    op.drop_table("station_sessions")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("stations")
    op.drop_table("products")
    op.drop_table("customers")
    op.drop_table("tariff_ranges")
    op.drop_table("tariffs")
