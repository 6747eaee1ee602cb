"""Note storage, keyed by unique title."""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from meowpad.ids import new_id
from meowpad.models import Note
from meowpad.store.associations import AssociationStore
from meowpad.utils import now

logger = logging.getLogger(__name__)


class NoteStore:
    """Notes are created on first use of a title and overwritten in place afterwards."""

    def __init__(self, session: Session, associations: AssociationStore):
        self.session = session
        self.associations = associations

    def upsert(self, content: str, title: str, link_id: Optional[uuid.UUID] = None,
               timestamp: Optional[datetime] = None) -> uuid.UUID:
        """
        Create a note, or replace the content of the note with this title.

        The replacement is a whole-content overwrite; callers that want to
        append read the old content first (see :meth:`append`). The link an
        existing note is attached to never changes.

        Returns:
            Identifier of the new or existing note
        """
        timestamp = timestamp or now()
        note = self.get_by_title(title)
        if note is not None:
            note.content = content
            note.modified_at = timestamp
            self.session.flush()
            logger.debug("Updated note %r", title)
            return note.id

        note = Note(
            id=new_id(),
            content=content,
            title=title,
            link_id=link_id,
            created_at=timestamp,
            modified_at=timestamp,
        )
        self.session.add(note)
        self.session.flush()
        logger.debug("Created note %r (%s)", title, note.id)
        return note.id

    def append(self, text: str, title: str, link_id: Optional[uuid.UUID] = None,
               timestamp: Optional[datetime] = None) -> uuid.UUID:
        """Add a line to the note with this title, creating it if needed."""
        note = self.get_by_title(title)
        if note is None or not note.content:
            content = text
        else:
            content = f"{note.content}\n{text}"
        return self.upsert(content, title, link_id, timestamp)

    def get(self, note_id: uuid.UUID) -> Optional[Note]:
        return self.session.get(Note, note_id)

    def get_by_title(self, title: str) -> Optional[Note]:
        return self.session.scalar(select(Note).where(Note.title == title))

    def get_by_link(self, link_id: uuid.UUID) -> Optional[Note]:
        return self.session.scalars(
            select(Note).where(Note.link_id == link_id).order_by(Note.created_at, Note.id)
        ).first()

    def for_link(self, link_id: uuid.UUID) -> List[Note]:
        return list(self.session.scalars(select(Note).where(Note.link_id == link_id)))

    def delete(self, note_id: uuid.UUID) -> bool:
        """Remove a note and its tag associations."""
        note = self.get(note_id)
        if note is None:
            return False
        self.associations.delete_for_item(note_id)
        self.session.delete(note)
        self.session.flush()
        logger.debug("Deleted note %r", note.title)
        return True
