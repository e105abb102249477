"""Add tenants and customdomains tables

Revision ID: 0001_custom_domains
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_custom_domains"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(50), server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_tenants_id", "tenants", ["id"])

    op.create_table(
        "customdomains",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "tenant_id",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="CUSTOM"),
        sa.Column("status", sa.String(50), nullable=False, server_default="PENDING"),
        sa.Column("verification_token", sa.String(100), nullable=True),
        sa.Column("verification_method", sa.String(50), nullable=False, server_default="TXT"),
        sa.Column("verification_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_verification_attempt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("ssl_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ssl_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ssl_provider", sa.String(100), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dns_records", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("domain", name="uq_customdomains_domain"),
    )
    op.create_index("ix_customdomains_id", "customdomains", ["id"])
    op.create_index("ix_customdomains_tenant_id", "customdomains", ["tenant_id"])
    op.create_index("ix_customdomains_status", "customdomains", ["status"])
    op.create_index("ix_customdomains_verification_token", "customdomains", ["verification_token"])
    op.create_index("ix_customdomains_tenant_primary", "customdomains", ["tenant_id", "is_primary"])


def downgrade() -> None:
    op.drop_index("ix_customdomains_tenant_primary", table_name="customdomains")
    op.drop_index("ix_customdomains_verification_token", table_name="customdomains")
    op.drop_index("ix_customdomains_status", table_name="customdomains")
    op.drop_index("ix_customdomains_tenant_id", table_name="customdomains")
    op.drop_index("ix_customdomains_id", table_name="customdomains")
    op.drop_table("customdomains")
    op.drop_index("ix_tenants_id", table_name="tenants")
    op.drop_table("tenants")
