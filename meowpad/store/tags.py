"""Tag storage, keyed by slug."""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from meowpad.errors import ValidationError
from meowpad.ids import new_id
from meowpad.models import Tag
from meowpad.utils import now, slugify

logger = logging.getLogger(__name__)


class TagStore:
    """
    Tags are created on first use of a slug and reused afterwards.

    Two names that slugify identically ("Jazz", "jazz!") are the same tag;
    the stored display name follows the most recent input.
    """

    def __init__(self, session: Session):
        self.session = session

    def require(self, name: str, slug: str, timestamp: Optional[datetime] = None) -> uuid.UUID:
        """
        Insert a tag, or refresh the one that already owns ``slug``.

        Args:
            name: Display name
            slug: Canonical slug; must already be in slug form
            timestamp: Creation/modification instant

        Returns:
            Identifier of the new or existing tag

        Raises:
            ValidationError: if ``slug`` is not a valid canonical slug
        """
        if slugify(slug) != slug:
            raise ValidationError(f"`{slug}` is not a canonical slug", operation="tag", subject=name)

        timestamp = timestamp or now()
        tag = self.get_by_slug(slug)
        if tag is not None:
            if tag.name != name:
                logger.debug("Renaming tag %s from %r to %r", slug, tag.name, name)
                tag.name = name
                tag.modified_at = timestamp
                self.session.flush()
            return tag.id

        tag = Tag(id=new_id(), name=name, slug=slug, created_at=timestamp, modified_at=timestamp)
        self.session.add(tag)
        self.session.flush()
        logger.debug("Created tag %s (%s)", slug, tag.id)
        return tag.id

    def require_name(self, name: str, timestamp: Optional[datetime] = None) -> uuid.UUID:
        """Slugify a user-supplied tag name and require it."""
        slug = slugify(name)
        return self.require(name.strip(), slug, timestamp)

    def get_by_slug(self, slug: str) -> Optional[Tag]:
        return self.session.scalar(select(Tag).where(Tag.slug == slug))

    def get(self, tag_id: uuid.UUID) -> Optional[Tag]:
        return self.session.get(Tag, tag_id)

    def all(self) -> List[Tag]:
        """All tags ordered by slug."""
        return list(self.session.scalars(select(Tag).order_by(Tag.slug)))
