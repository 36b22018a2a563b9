"""create raffle tables

Revision ID: 0001_create_raffle_tables
Revises:
Create Date: 2026-10-19 09:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_create_raffle_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "raffles",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("operator", sa.String(length=255), nullable=False),
        sa.Column("entry_fee", sa.BigInteger(), nullable=False),
        sa.Column("phase", sa.String(length=10), nullable=False),
        sa.Column("prize_asset_id", sa.String(length=255), nullable=True),
        sa.Column("prize_token_id", sa.BigInteger(), nullable=True),
        sa.Column("total_entries", sa.BigInteger(), nullable=False),
        sa.Column("fee_pool_balance", sa.BigInteger(), nullable=False),
        sa.Column("cycle", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "phase IN ('idle','open','closed')", name=op.f("ck_raffles_phase_enum")
        ),
        sa.CheckConstraint("entry_fee > 0", name=op.f("ck_raffles_entry_fee_positive")),
        sa.CheckConstraint(
            "total_entries >= 0", name=op.f("ck_raffles_total_entries_non_negative")
        ),
        sa.CheckConstraint(
            "fee_pool_balance >= 0", name=op.f("ck_raffles_fee_pool_non_negative")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffles")),
        sa.UniqueConstraint("name", name=op.f("uq_raffles_name")),
    )

    op.create_table(
        "raffle_entries",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("raffle_id", ID, nullable=False),
        sa.Column("participant", sa.String(length=255), nullable=False),
        sa.Column("entry_count", sa.BigInteger(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "entry_count > 0", name=op.f("ck_raffle_entries_entry_count_positive")
        ),
        sa.ForeignKeyConstraint(
            ["raffle_id"],
            ["raffles.id"],
            name=op.f("fk_raffle_entries_raffle_id_raffles"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_entries")),
        sa.UniqueConstraint(
            "raffle_id", "participant", name="uq_raffle_entry_participant"
        ),
    )
    op.create_index(
        op.f("ix_raffle_entries_raffle_id"), "raffle_entries", ["raffle_id"]
    )

    op.create_table(
        "raffle_refund_balances",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("raffle_id", ID, nullable=False),
        sa.Column("participant", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "amount > 0", name=op.f("ck_raffle_refund_balances_amount_positive")
        ),
        sa.ForeignKeyConstraint(
            ["raffle_id"],
            ["raffles.id"],
            name=op.f("fk_raffle_refund_balances_raffle_id_raffles"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_refund_balances")),
        sa.UniqueConstraint(
            "raffle_id", "participant", name="uq_raffle_refund_participant"
        ),
    )
    op.create_index(
        op.f("ix_raffle_refund_balances_raffle_id"),
        "raffle_refund_balances",
        ["raffle_id"],
    )

    op.create_table(
        "raffle_draws",
        sa.Column("id", ID, autoincrement=True, nullable=False),
        sa.Column("raffle_id", ID, nullable=False),
        sa.Column("cycle", sa.Integer(), nullable=False),
        sa.Column("winner", sa.String(length=255), nullable=False),
        sa.Column("prize_asset_id", sa.String(length=255), nullable=False),
        sa.Column("prize_token_id", sa.BigInteger(), nullable=False),
        sa.Column("winning_index", sa.BigInteger(), nullable=False),
        sa.Column("total_entries", sa.BigInteger(), nullable=False),
        sa.Column("participant_count", sa.Integer(), nullable=False),
        sa.Column("proof_json", sa.Text(), nullable=True),
        sa.Column("drawn_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["raffle_id"],
            ["raffles.id"],
            name=op.f("fk_raffle_draws_raffle_id_raffles"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_draws")),
        sa.UniqueConstraint("raffle_id", "cycle", name="uq_raffle_draw_cycle"),
    )
    op.create_index(op.f("ix_raffle_draws_raffle_id"), "raffle_draws", ["raffle_id"])

    op.create_table(
        "blockchain_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("raffle_id", ID, nullable=True),
        sa.Column("recipient_paymail", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=True),
        sa.Column("prize_asset_id", sa.String(length=255), nullable=True),
        sa.Column("prize_token_id", sa.BigInteger(), nullable=True),
        sa.Column("tx_hash", sa.String(length=255), nullable=True),
        sa.Column("request_payload_json", sa.Text(), nullable=True),
        sa.Column("response_payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "type IN ('prize_transfer','payout')",
            name=op.f("ck_blockchain_transactions_type_enum"),
        ),
        sa.CheckConstraint(
            "status IN ('sent','failed')",
            name=op.f("ck_blockchain_transactions_status_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["raffle_id"],
            ["raffles.id"],
            name=op.f("fk_blockchain_transactions_raffle_id_raffles"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_blockchain_transactions")),
        sa.UniqueConstraint(
            "tx_hash", name=op.f("uq_blockchain_transactions_tx_hash")
        ),
    )
    op.create_index("ix_chain_raffle", "blockchain_transactions", ["raffle_id"])
    op.create_index("ix_chain_status", "blockchain_transactions", ["status"])
    op.create_index(
        "ix_chain_type_status", "blockchain_transactions", ["type", "status"]
    )


def downgrade() -> None:
    op.drop_index("ix_chain_type_status", table_name="blockchain_transactions")
    op.drop_index("ix_chain_status", table_name="blockchain_transactions")
    op.drop_index("ix_chain_raffle", table_name="blockchain_transactions")
    op.drop_table("blockchain_transactions")
    op.drop_index(op.f("ix_raffle_draws_raffle_id"), table_name="raffle_draws")
    op.drop_table("raffle_draws")
    op.drop_index(
        op.f("ix_raffle_refund_balances_raffle_id"),
        table_name="raffle_refund_balances",
    )
    op.drop_table("raffle_refund_balances")
    op.drop_index(op.f("ix_raffle_entries_raffle_id"), table_name="raffle_entries")
    op.drop_table("raffle_entries")
    op.drop_table("raffles")
