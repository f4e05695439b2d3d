"""001_initial: create contracts, contract_sites, interventions, intervention_history.

Revision ID: 001_initial
Revises: None
Create Date: 2024-01-08
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _rule_columns() -> list:
    columns = []
    for prefix in ("regular", "inspection"):
        columns += [
            sa.Column(f"{prefix}_frequency", sa.String(20), nullable=True),
            sa.Column(f"{prefix}_custom_days", sa.Integer(), nullable=True),
            sa.Column(f"{prefix}_count", sa.Integer(), nullable=True),
            sa.Column(f"first_{prefix}_date", sa.Date(), nullable=True),
        ]
    return columns


def upgrade() -> None:
    # --- contracts ---
    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("purchase_order_number", sa.Text(), nullable=True),
        *_rule_columns(),
        sa.Column("auto_create_next", sa.Boolean(), nullable=False,
                  server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contracts_status", "contracts", ["status"])
    op.create_index("ix_contracts_client", "contracts", ["client_id"])

    # --- contract_sites ---
    op.create_table(
        "contract_sites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("site_id", sa.Integer(), nullable=False),
        sa.Column("services", sa.JSON(), nullable=True),
        *_rule_columns(),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contract_id", "site_id", name="uq_contract_site"),
    )

    # --- interventions ---
    op.create_table(
        "interventions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("contract_id", sa.Integer(), nullable=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("site_id", sa.Integer(), nullable=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("service_label", sa.Text(), nullable=True),
        sa.Column("planned_date", sa.Date(), nullable=False),
        sa.Column("planned_time", sa.String(5), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False,
                  server_default="TO_SCHEDULE"),
        sa.Column("completed_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_interventions_series",
        "interventions",
        ["contract_id", "site_id", "kind"],
    )
    op.create_index("ix_interventions_planned", "interventions", ["planned_date"])
    op.create_index("ix_interventions_status", "interventions", ["status"])

    # --- intervention_history ---
    op.create_table(
        "intervention_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("intervention_id", sa.Integer(), nullable=False),
        sa.Column("field_changed", sa.Text(), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("changed_by_id", sa.Integer(), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["intervention_id"],
            ["interventions.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_intervention_history_iid", "intervention_history", ["intervention_id"]
    )


def downgrade() -> None:
    op.drop_table("intervention_history")
    op.drop_table("interventions")
    op.drop_table("contract_sites")
    op.drop_table("contracts")
