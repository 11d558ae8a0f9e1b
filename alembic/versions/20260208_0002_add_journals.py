"""add journals and journal members

Revision ID: 20260208_0002
Revises: 20260110_0001
Create Date: 2026-02-08 00:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20260208_0002"
down_revision = "20260110_0001"
branch_labels = None
depends_on = None

journal_role = sa.Enum("ADMIN", "WRITER", name="journal_role")


def upgrade() -> None:
    op.create_table(
        "journals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_journals")),
    )
    op.create_index(op.f("ix_journals_slug"), "journals", ["slug"], unique=True)

    op.create_table(
        "journal_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("journal_id", sa.Integer(), nullable=False),
        sa.Column("role", journal_role, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_journal_members_user_id_users"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["journal_id"], ["journals.id"], name=op.f("fk_journal_members_journal_id_journals"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_journal_members")),
        sa.UniqueConstraint("user_id", "journal_id", name="uq_journal_members_user_journal"),
    )
    op.create_index(op.f("ix_journal_members_user_id"), "journal_members", ["user_id"], unique=False)
    op.create_index(op.f("ix_journal_members_journal_id"), "journal_members", ["journal_id"], unique=False)

    op.add_column("articles", sa.Column("journal_id", sa.Integer(), nullable=True))
    op.create_index(op.f("ix_articles_journal_id"), "articles", ["journal_id"], unique=False)
    op.create_foreign_key(
        "fk_articles_journal_id_journals", "articles", "journals", ["journal_id"], ["id"], ondelete="SET NULL"
    )


def downgrade() -> None:
    op.drop_constraint("fk_articles_journal_id_journals", "articles", type_="foreignkey")
    op.drop_index(op.f("ix_articles_journal_id"), table_name="articles")
    op.drop_column("articles", "journal_id")
    op.drop_index(op.f("ix_journal_members_journal_id"), table_name="journal_members")
    op.drop_index(op.f("ix_journal_members_user_id"), table_name="journal_members")
    op.drop_table("journal_members")
    journal_role.drop(op.get_bind(), checkfirst=True)
    op.drop_index(op.f("ix_journals_slug"), table_name="journals")
    op.drop_table("journals")
