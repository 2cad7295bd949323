"""connection graph: requests + edges

Revision ID: 0001_connection_graph
Revises:
Create Date: 2026-10-19 09:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_connection_graph"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "connection_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("requester_id", sa.BigInteger(), nullable=False),
        sa.Column("recipient_id", sa.BigInteger(), nullable=False),
        sa.Column("user_low", sa.BigInteger(), nullable=False),
        sa.Column("user_high", sa.BigInteger(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("requester_id <> recipient_id", name="ck_request_not_self"),
        sa.CheckConstraint("user_low < user_high", name="ck_request_pair_order"),
    )
    op.create_index(
        "ix_connection_requests_requester_id",
        "connection_requests",
        ["requester_id"],
    )
    op.create_index(
        "ix_connection_requests_recipient_id",
        "connection_requests",
        ["recipient_id"],
    )
    op.create_index(
        "ix_connection_requests_recipient_status",
        "connection_requests",
        ["recipient_id", "status"],
    )
    op.create_index(
        "ix_connection_requests_requester_status",
        "connection_requests",
        ["requester_id", "status"],
    )
    op.create_index(
        "uq_connection_requests_pending_pair",
        "connection_requests",
        ["user_low", "user_high"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "connection_edges",
        sa.Column("user_low", sa.BigInteger(), nullable=False),
        sa.Column("user_high", sa.BigInteger(), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("user_low", "user_high"),
        sa.CheckConstraint("user_low < user_high", name="ck_edge_pair_order"),
    )
    op.create_index(
        "ix_connection_edges_user_high",
        "connection_edges",
        ["user_high"],
    )


def downgrade() -> None:
    op.drop_index("ix_connection_edges_user_high", table_name="connection_edges")
    op.drop_table("connection_edges")

    op.drop_index("uq_connection_requests_pending_pair", table_name="connection_requests")
    op.drop_index("ix_connection_requests_requester_status", table_name="connection_requests")
    op.drop_index("ix_connection_requests_recipient_status", table_name="connection_requests")
    op.drop_index("ix_connection_requests_recipient_id", table_name="connection_requests")
    op.drop_index("ix_connection_requests_requester_id", table_name="connection_requests")
    op.drop_table("connection_requests")
