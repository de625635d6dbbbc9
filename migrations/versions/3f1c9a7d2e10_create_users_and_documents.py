"""create users_table and documents

Revision ID: 3f1c9a7d2e10
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2e10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users_table",
        sa.Column("uid", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("disabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("custom_claims", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("last_sign_in_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("uid"),
    )
    op.create_index(
        op.f("ix_users_table_email"), "users_table", ["email"], unique=True
    )

    op.create_table(
        "documents",
        sa.Column("path", sa.String(length=1024), nullable=False),
        sa.Column("collection_path", sa.String(length=1024), nullable=False),
        sa.Column("doc_id", sa.String(length=255), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("path"),
    )
    op.create_index(
        "idx_documents_collection", "documents", ["collection_path", "doc_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_documents_collection", table_name="documents")
    op.drop_table("documents")
    op.drop_index(op.f("ix_users_table_email"), table_name="users_table")
    op.drop_table("users_table")
