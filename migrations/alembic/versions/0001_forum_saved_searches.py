"""Forum schema - users, topics, posts, saved searches, saved search cursors

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the forum tables used by saved-search notifications, plus a GIN
expression index so post search can use full-text matching.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("trust_level", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.CheckConstraint("trust_level BETWEEN 0 AND 4", name="ck_users_trust_level"),
    )

    # ==========================================================================
    # topics table
    # ==========================================================================
    op.create_table(
        "topics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("archetype", sa.Text(), nullable=False),
        sa.Column("subtype", sa.Text(), nullable=True),
        sa.Column("visible", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "archetype IN ('regular', 'private_message')",
            name="ck_topics_archetype",
        ),
    )
    op.create_index("ix_topics_subtype", "topics", ["subtype"])

    # ==========================================================================
    # topic_allowed_users table
    # ==========================================================================
    op.create_table(
        "topic_allowed_users",
        sa.Column("topic_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("topic_id", "user_id"),
        sa.ForeignKeyConstraint(["topic_id"], ["topics.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    # ==========================================================================
    # posts table
    # ==========================================================================
    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("topic_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("post_number", sa.Integer(), nullable=False),
        sa.Column("raw", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["topic_id"], ["topics.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("topic_id", "post_number", name="uq_posts_topic_post_number"),
    )
    op.create_index("ix_posts_created_at_id", "posts", ["created_at", "id"])
    op.execute(
        "CREATE INDEX ix_posts_raw_tsv ON posts "
        "USING GIN (to_tsvector('english'::regconfig, raw))"
    )

    # ==========================================================================
    # saved_searches table
    # ==========================================================================
    op.create_table(
        "saved_searches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("term", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "position", name="uq_saved_searches_user_position"),
        sa.CheckConstraint("length(term) >= 1", name="ck_saved_searches_term_nonempty"),
    )

    # ==========================================================================
    # saved_search_cursors table
    # ==========================================================================
    op.create_table(
        "saved_search_cursors",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("term", sa.Text(), nullable=False),
        sa.Column("last_post_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_post_id", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "term"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_table("saved_search_cursors")
    op.drop_table("saved_searches")
    op.execute("DROP INDEX IF EXISTS ix_posts_raw_tsv")
    op.drop_index("ix_posts_created_at_id", table_name="posts")
    op.drop_table("posts")
    op.drop_table("topic_allowed_users")
    op.drop_index("ix_topics_subtype", table_name="topics")
    op.drop_table("topics")
    op.drop_table("users")
