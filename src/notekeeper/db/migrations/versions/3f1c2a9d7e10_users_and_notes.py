"""users, notes and note_tags

Learn: The unique constraints on users.email and users.federated_id are
what make concurrent signups / federated logins safe — the second insert
fails instead of creating a duplicate account.

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-19 09:12:41.204113
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False),
        sa.Column("federated_id", sa.String(length=255), nullable=True),
        sa.Column("profile_picture", sa.Text(), nullable=False),
        sa.Column("otp_code", sa.String(length=6), nullable=True),
        sa.Column("otp_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("federated_id"),
    )
    op.create_index("ix_users_email_verified", "users", ["email", "is_email_verified"])

    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_pinned", sa.Boolean(), nullable=False),
        sa.Column("background_color", sa.String(length=7), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_user_created", "notes", ["user_id", "created_at"])
    op.create_index("ix_notes_user_pinned", "notes", ["user_id", "is_pinned", "created_at"])

    op.create_table(
        "note_tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("note_id", sa.Uuid(), nullable=False),
        sa.Column("tag", sa.String(length=30), nullable=False),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_note_tags_tag", "note_tags", ["tag"])


def downgrade() -> None:
    op.drop_index("ix_note_tags_tag", table_name="note_tags")
    op.drop_table("note_tags")
    op.drop_index("ix_notes_user_pinned", table_name="notes")
    op.drop_index("ix_notes_user_created", table_name="notes")
    op.drop_table("notes")
    op.drop_index("ix_users_email_verified", table_name="users")
    op.drop_table("users")
