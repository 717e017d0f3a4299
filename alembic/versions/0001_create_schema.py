from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    dialect = op.get_bind().dialect.name
    if dialect == "postgresql":
        pin_digits = "pin_code ~ '^[0-9]{6}$'"
    else:
        pin_digits = "pin_code NOT GLOB '*[^0-9]*'"

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)

    op.create_table(
        "states",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
    )

    op.create_table(
        "cities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("state_id", sa.Integer(), sa.ForeignKey("states.id"), nullable=False),
        sa.UniqueConstraint("state_id", "name", name="uq_cities_state_name"),
    )
    op.create_index("ix_cities_state_id", "cities", ["state_id"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=150), nullable=False),
        sa.Column("company_name", sa.String(length=150), nullable=False),
        sa.Column("phone_number", sa.String(length=15), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_customers_full_name", "customers", ["full_name"], unique=False)
    # emails differing only by case must collide as well
    op.create_index("uq_customers_email_lower", "customers", [sa.text("lower(email)")], unique=True)

    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "customer_id",
            sa.Integer(),
            sa.ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("house_flat_number", sa.String(length=50), nullable=False),
        sa.Column("building_street", sa.String(length=150), nullable=False),
        sa.Column("locality_area", sa.String(length=100), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("pin_code", sa.String(length=6), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("length(pin_code) = 6", name="ck_addresses_pin_code_length"),
        sa.CheckConstraint(pin_digits, name="ck_addresses_pin_code_digits"),
    )
    op.create_index("ix_addresses_customer_id", "addresses", ["customer_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_addresses_customer_id", table_name="addresses")
    op.drop_table("addresses")
    op.drop_index("uq_customers_email_lower", table_name="customers")
    op.drop_index("ix_customers_full_name", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_cities_state_id", table_name="cities")
    op.drop_table("cities")
    op.drop_table("states")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
