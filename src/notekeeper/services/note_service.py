"""Note service — business logic for a user's notes.

Learn: Every method takes the owner's id (from the AuthContext the gate
built) and puts it in the WHERE clause. There is no "load then check
owner" step: a note owned by someone else simply isn't found.
"""

import math
import uuid

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.db.models import Note, NoteTag, utcnow

SORT_COLUMNS = {
    "createdAt": Note.created_at,
    "updatedAt": Note.updated_at,
    "title": Note.title,
}


class NoteService:
    """CRUD, search and stats for notes, scoped to one owner per call."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_notes(
        self,
        user_id: uuid.UUID,
        search: str | None = None,
        tag: str | None = None,
        sort_by: str = "createdAt",
        order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Note], dict]:
        """Filtered, paginated listing. Pinned notes always come first."""
        q = select(Note).where(Note.user_id == user_id)
        if search:
            pattern = f"%{search}%"
            q = q.where(
                or_(
                    Note.title.ilike(pattern),
                    Note.content.ilike(pattern),
                    Note.id.in_(
                        select(NoteTag.note_id).where(NoteTag.tag.ilike(pattern))
                    ),
                )
            )
        if tag:
            q = q.where(Note.id.in_(select(NoteTag.note_id).where(NoteTag.tag == tag)))

        total = (
            await self.db.execute(select(func.count()).select_from(q.subquery()))
        ).scalar_one()

        column = SORT_COLUMNS.get(sort_by, Note.created_at)
        direction = desc if order == "desc" else asc
        q = (
            q.order_by(desc(Note.is_pinned), direction(column))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(q)
        notes = list(result.scalars().all())

        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        }
        return notes, pagination

    async def get_note(self, user_id: uuid.UUID, note_id: uuid.UUID) -> Note | None:
        result = await self.db.execute(
            select(Note).where(Note.id == note_id, Note.user_id == user_id)
        )
        return result.scalars().first()

    async def create_note(
        self,
        user_id: uuid.UUID,
        title: str,
        content: str,
        tags: list[str] | None = None,
        background_color: str = "#ffffff",
    ) -> Note:
        note = Note(
            user_id=user_id,
            title=title,
            content=content,
            background_color=background_color,
            tag_rows=[NoteTag(tag=t) for t in tags or []],
        )
        self.db.add(note)
        await self.db.commit()
        return note

    async def update_note(
        self, user_id: uuid.UUID, note_id: uuid.UUID, changes: dict
    ) -> Note | None:
        """Apply a partial update. Returns None if the note isn't the user's."""
        note = await self.get_note(user_id, note_id)
        if not note:
            return None

        if "tags" in changes:
            note.tag_rows = [NoteTag(tag=t) for t in changes.pop("tags") or []]
        for field, value in changes.items():
            setattr(note, field, value)
        note.updated_at = utcnow()

        await self.db.commit()
        return note

    async def delete_note(self, user_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        note = await self.get_note(user_id, note_id)
        if not note:
            return False
        await self.db.delete(note)
        await self.db.commit()
        return True

    async def toggle_pin(self, user_id: uuid.UUID, note_id: uuid.UUID) -> Note | None:
        note = await self.get_note(user_id, note_id)
        if not note:
            return None
        note.is_pinned = not note.is_pinned
        note.updated_at = utcnow()
        await self.db.commit()
        return note

    async def stats(self, user_id: uuid.UUID) -> dict:
        """Total, pinned, and the ten most used tags."""
        total = (
            await self.db.execute(
                select(func.count()).select_from(Note).where(Note.user_id == user_id)
            )
        ).scalar_one()
        pinned = (
            await self.db.execute(
                select(func.count())
                .select_from(Note)
                .where(Note.user_id == user_id, Note.is_pinned.is_(True))
            )
        ).scalar_one()

        count = func.count(NoteTag.id).label("count")
        rows = (
            await self.db.execute(
                select(NoteTag.tag, count)
                .join(Note, Note.id == NoteTag.note_id)
                .where(Note.user_id == user_id)
                .group_by(NoteTag.tag)
                .order_by(desc(count), NoteTag.tag)
                .limit(10)
            )
        ).all()

        return {
            "total_notes": total,
            "pinned_notes": pinned,
            "top_tags": [{"tag": tag, "count": n} for tag, n in rows],
        }
