"""Начальная схема: пользователи, каналы, конкурсы, приглашения

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("username", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "channels",
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("registered_by", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("link", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "contests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("prize", sa.String(), nullable=False),
        sa.Column("end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("chan", sa.BigInteger(), sa.ForeignKey("channels.id"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stopped", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "chan", name="uq_contest_name_chan"),
    )
    op.create_table(
        "invitations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("dest", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("chan", sa.BigInteger(), sa.ForeignKey("channels.id"), nullable=False),
        sa.Column("contest", sa.Integer(), sa.ForeignKey("contests.id"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("source <> dest", name="ck_invitation_not_self"),
        sa.UniqueConstraint("source", "dest", "chan", name="uq_invitation_source_dest_chan"),
    )
    op.create_table(
        "pending_contest_edits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chan", sa.BigInteger(), sa.ForeignKey("channels.id"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "pending_winner_contacts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("owner", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("contacted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("idx_invitations_contest_source", "invitations", ["contest", "source"])
    op.create_index("idx_invitations_contest_dest", "invitations", ["contest", "dest"])
    op.create_index("idx_contests_chan", "contests", ["chan"])
    op.create_index("idx_channels_registered_by", "channels", ["registered_by"])


def downgrade() -> None:
    op.drop_index("idx_channels_registered_by", table_name="channels")
    op.drop_index("idx_contests_chan", table_name="contests")
    op.drop_index("idx_invitations_contest_dest", table_name="invitations")
    op.drop_index("idx_invitations_contest_source", table_name="invitations")
    op.drop_table("pending_winner_contacts")
    op.drop_table("pending_contest_edits")
    op.drop_table("invitations")
    op.drop_table("contests")
    op.drop_table("channels")
    op.drop_table("users")
