"""add article purchases

Revision ID: 20260215_0003
Revises: 20260208_0002
Create Date: 2026-02-15 00:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20260215_0003"
down_revision = "20260208_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "article_purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("article_id", sa.Integer(), nullable=False),
        sa.Column("amount_paid", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_article_purchases_user_id_users"), ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["article_id"], ["articles.id"], name=op.f("fk_article_purchases_article_id_articles"), ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_article_purchases")),
        sa.UniqueConstraint("user_id", "article_id", name="uq_article_purchases_user_article"),
    )
    op.create_index(op.f("ix_article_purchases_user_id"), "article_purchases", ["user_id"], unique=False)
    op.create_index(op.f("ix_article_purchases_article_id"), "article_purchases", ["article_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_article_purchases_article_id"), table_name="article_purchases")
    op.drop_index(op.f("ix_article_purchases_user_id"), table_name="article_purchases")
    op.drop_table("article_purchases")
