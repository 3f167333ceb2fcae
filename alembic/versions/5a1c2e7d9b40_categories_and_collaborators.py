"""feat: categories and category_collaborators tables

Revision ID: 5a1c2e7d9b40
Revises:
Create Date: 2025-08-02 10:12:44.318220

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5a1c2e7d9b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")  # gen_random_uuid() before PG13

    op.create_table(
        "categories",
        sa.Column("id", sa.Text, primary_key=True, server_default=sa.text("gen_random_uuid()::text")),
        # Identity-provider uid of the creator
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("icon", sa.Text, nullable=False, server_default="📚"),
        sa.Column("color", sa.Text, nullable=False, server_default="#3B82F6"),
        sa.Column("is_collaborative", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "shared_with",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column("invite_token", sa.Text, nullable=True),
        sa.Column("invite_expiry", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("invite_token", name="uq_categories_invite_token"),
        sa.CheckConstraint(
            "(invite_token IS NULL) = (invite_expiry IS NULL)",
            name="ck_categories_invite_pair",
        ),
        sa.Index("ix_categories_user_id", "user_id"),
    )

    op.create_table(
        "category_collaborators",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("category_id", sa.Text, sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column(
            "permission",
            sa.Enum("admin", "editor", "viewer", name="collaborator_permission"),
            nullable=False,
            server_default="viewer",
        ),
        # NULL when the row came from an invite redemption
        sa.Column("added_by", sa.Text, nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("category_id", "user_id", name="uq_category_collaborator"),
        sa.Index("ix_category_collaborators_user_id", "user_id"),
    )


def downgrade() -> None:
    op.drop_table("category_collaborators")
    op.drop_table("categories")
    op.execute("DROP TYPE IF EXISTS collaborator_permission")
