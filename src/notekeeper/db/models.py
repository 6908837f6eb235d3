"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror these definitions.

Key concepts:
- UUID primary keys via the generic Uuid type (native on PostgreSQL,
  CHAR(32) on SQLite, so the test suite runs without a server)
- Uniqueness of email and federated_id is enforced by the database, not
  by application-level checks alone. Two concurrent signups for the same
  address cannot both commit.
- Python-side defaults for timestamps, so values are known immediately
  after flush without a round-trip (async sessions can't lazy-load).
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


# ══════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════


class User(Base):
    """An account. Created unverified by signup, verified by OTP or federated login.

    Learn: password_hash is nullable because accounts created through
    Google sign-in never get one. otp_code/otp_expiry are only populated
    while an email verification is pending and are always written and
    cleared together.

    Nothing on this class hides columns from queries. Code that hands an
    account to a client goes through auth.store.to_public().
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_email_verified", "email", "is_email_verified"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # nullable for federated-only accounts
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    federated_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    profile_picture: Mapped[str] = mapped_column(Text, nullable=False, default="")
    otp_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    otp_expiry: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    notes: Mapped[list["Note"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


# ══════════════════════════════════════════════════════════════
# Notes
# ══════════════════════════════════════════════════════════════


class Note(Base):
    """A note owned by exactly one user.

    Learn: Every query against this table is filtered by user_id — the
    id the authorization gate resolved for the request. A note that
    belongs to someone else is indistinguishable from one that doesn't
    exist.
    """

    __tablename__ = "notes"
    __table_args__ = (
        Index("ix_notes_user_created", "user_id", "created_at"),
        Index("ix_notes_user_pinned", "user_id", "is_pinned", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    background_color: Mapped[str] = mapped_column(
        String(7), nullable=False, default="#ffffff"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped["User"] = relationship(back_populates="notes")
    tag_rows: Mapped[list["NoteTag"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="NoteTag.id",
    )

    @property
    def tags(self) -> list[str]:
        return [row.tag for row in self.tag_rows]


class NoteTag(Base):
    """One tag on one note. Kept relational so tag filters and the
    top-tags aggregate are plain SQL on any backend."""

    __tablename__ = "note_tags"
    __table_args__ = (Index("ix_note_tags_tag", "tag"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    tag: Mapped[str] = mapped_column(String(30), nullable=False)

    note: Mapped["Note"] = relationship(back_populates="tag_rows")
