"""connection blocks + note/tags on edges

Revision ID: 0002_blocks_notes_tags
Revises: 0001_connection_graph
Create Date: 2026-10-20 10:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_blocks_notes_tags"
down_revision = "0001_connection_graph"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("connection_edges") as batch_op:
        batch_op.add_column(sa.Column("note", sa.Text(), nullable=True))
        batch_op.add_column(
            sa.Column(
                "tags",
                sa.JSON(),
                nullable=False,
                server_default=sa.text("'[]'"),
            )
        )

    op.create_table(
        "connection_blocks",
        sa.Column("user_low", sa.BigInteger(), nullable=False),
        sa.Column("user_high", sa.BigInteger(), nullable=False),
        sa.Column("blocked_by", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("user_low", "user_high"),
        sa.CheckConstraint("user_low < user_high", name="ck_block_pair_order"),
        sa.CheckConstraint(
            "blocked_by = user_low OR blocked_by = user_high",
            name="ck_block_by_member",
        ),
    )
    op.create_index(
        "ix_connection_blocks_blocked_by",
        "connection_blocks",
        ["blocked_by"],
    )


def downgrade() -> None:
    op.drop_index("ix_connection_blocks_blocked_by", table_name="connection_blocks")
    op.drop_table("connection_blocks")

    with op.batch_alter_table("connection_edges") as batch_op:
        batch_op.drop_column("tags")
        batch_op.drop_column("note")
