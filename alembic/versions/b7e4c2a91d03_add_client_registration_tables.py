"""add client registration and catalog tables

Revision ID: b7e4c2a91d03
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

revision = "b7e4c2a91d03"
down_revision = None
branch_labels = None
depends_on = None

CATALOG_TABLES = ("activity_branches", "carrier_codes", "price_lists", "billing_methods", "sellers")


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tax_id", sa.String(14), nullable=False),
        sa.Column("legal_name", sa.String(200), nullable=False),
        sa.Column("trade_name", sa.String(200), nullable=True),
        sa.Column("registration_status", sa.String(80), nullable=True),
        sa.Column("company_size", sa.String(80), nullable=True),
        sa.Column("legal_nature", sa.String(160), nullable=True),
        sa.Column("founded_on", sa.String(20), nullable=True),
        sa.Column("state_registration", sa.String(40), nullable=True),
        sa.Column("suframa_registration", sa.String(40), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_companies_tax_id", "companies", ["tax_id"])

    op.create_table(
        "company_addresses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("street", sa.String(200), nullable=True),
        sa.Column("number", sa.String(20), nullable=True),
        sa.Column("complement", sa.String(120), nullable=True),
        sa.Column("district", sa.String(120), nullable=True),
        sa.Column("city", sa.String(120), nullable=True),
        sa.Column("state", sa.String(2), nullable=True),
        sa.Column("postal_code", sa.String(10), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_company_addresses_company_id", "company_addresses", ["company_id"])

    op.create_table(
        "company_contacts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("landline_phones", sa.JSON(), nullable=True),
        sa.Column("mobile_phones", sa.JSON(), nullable=True),
        sa.Column("emails", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_company_contacts_company_id", "company_contacts", ["company_id"])

    for table in CATALOG_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("code", sa.String(20), nullable=False),
            sa.Column("name", sa.String(120), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        )

    registration_status = sa.Enum("draft", "submitted", "approved", "rejected", name="registrationstatus")

    op.create_table(
        "client_registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tax_id", sa.String(18), nullable=False),
        sa.Column("legal_name", sa.String(200), nullable=False),
        sa.Column("trade_name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("status", registration_status, nullable=False, server_default="submitted"),
        sa.Column("activity_branch_id", sa.Integer(), sa.ForeignKey("activity_branches.id"), nullable=True),
        sa.Column("carrier_code_id", sa.Integer(), sa.ForeignKey("carrier_codes.id"), nullable=True),
        sa.Column("price_list_id", sa.Integer(), sa.ForeignKey("price_lists.id"), nullable=True),
        sa.Column("billing_method_id", sa.Integer(), sa.ForeignKey("billing_methods.id"), nullable=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("sellers.id"), nullable=True),
        sa.Column("payment_condition_id", sa.String(40), nullable=True),
        sa.Column("credit_limit", sa.Numeric(14, 2), nullable=True),
        sa.Column("erp_customer_id", sa.Integer(), nullable=True),
        sa.Column("erp_response_json", sa.Text(), nullable=True),
        sa.Column("erp_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("erp_last_error", sa.Text(), nullable=True),
        sa.Column("erp_conflict_customer_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("tax_id", name="uq_client_registrations_tax_id"),
        sa.UniqueConstraint("erp_customer_id", name="uq_client_registrations_erp_customer"),
    )


def downgrade() -> None:
    op.drop_table("client_registrations")
    sa.Enum(name="registrationstatus").drop(op.get_bind(), checkfirst=True)
    for table in reversed(CATALOG_TABLES):
        op.drop_table(table)
    op.drop_index("ix_company_contacts_company_id", table_name="company_contacts")
    op.drop_table("company_contacts")
    op.drop_index("ix_company_addresses_company_id", table_name="company_addresses")
    op.drop_table("company_addresses")
    op.drop_index("ix_companies_tax_id", table_name="companies")
    op.drop_table("companies")
