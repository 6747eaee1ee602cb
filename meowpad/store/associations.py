"""
Item/tag associations.

One table tags both links and notes. Each row belongs to exactly one owner;
the owner is passed around as a ``LinkOwner`` or ``NoteOwner`` so the
column it maps to is fixed by its type rather than by which of two
arguments happens to be non-null.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import List, Union

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from meowpad.models import Tag, item_tags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkOwner:
    id: uuid.UUID

    column = 'link_id'


@dataclass(frozen=True)
class NoteOwner:
    id: uuid.UUID

    column = 'note_id'


Owner = Union[LinkOwner, NoteOwner]


def _owned_by(item_id: uuid.UUID):
    return or_(item_tags.c.link_id == item_id, item_tags.c.note_id == item_id)


class AssociationStore:
    """Idempotent tagging of links and notes."""

    def __init__(self, session: Session):
        self.session = session

    def tag(self, owner: Owner, tag_id: uuid.UUID) -> bool:
        """
        Associate a tag with an owner.

        Returns:
            True if a row was inserted, False if the pair already existed
        """
        column = item_tags.c[owner.column]
        existing = self.session.scalar(
            select(func.count())
            .select_from(item_tags)
            .where(column == owner.id, item_tags.c.tag_id == tag_id)
        )
        if existing:
            return False
        self.session.execute(item_tags.insert().values({owner.column: owner.id, 'tag_id': tag_id}))
        logger.debug("Tagged %s %s with %s", owner.column[:-3], owner.id, tag_id)
        return True

    def link_tag(self, link_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
        return self.tag(LinkOwner(link_id), tag_id)

    def note_tag(self, note_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
        return self.tag(NoteOwner(note_id), tag_id)

    def tags_for(self, item_id: uuid.UUID) -> List[Tag]:
        """Tags of a link or note (whichever the id denotes), ordered by slug."""
        tag_ids = select(item_tags.c.tag_id).where(_owned_by(item_id))
        return list(self.session.scalars(
            select(Tag).where(Tag.id.in_(tag_ids)).order_by(Tag.slug)
        ))

    def delete_for_item(self, item_id: uuid.UUID) -> int:
        """Remove every association owned by the id, as a link or as a note."""
        result = self.session.execute(delete(item_tags).where(_owned_by(item_id)))
        return result.rowcount
