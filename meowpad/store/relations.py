"""Directed, optionally labelled relations between links."""
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, select, update
from sqlalchemy.orm import Session

from meowpad.errors import NotFound, ValidationError
from meowpad.models import Link, related_links

logger = logging.getLogger(__name__)


class RelationStore:
    """
    Edges of the form "primary relates to related".

    The store references link identifiers but never creates or removes
    links; the link store decides what happens to the endpoints.
    """

    def __init__(self, session: Session):
        self.session = session

    def relate(self, primary_id: uuid.UUID, related_id: uuid.UUID,
               relationship: Optional[str] = None) -> bool:
        """
        Add an edge from ``primary_id`` to ``related_id``.

        Relating the same pair again keeps the single edge and replaces its
        label when a new one is given.

        Returns:
            True if a new edge was inserted

        Raises:
            NotFound: if either endpoint is not a link
            ValidationError: if a link is related to itself
        """
        if primary_id == related_id:
            raise ValidationError("A link cannot be related to itself",
                                  operation="relate", subject=str(primary_id))
        for endpoint in (primary_id, related_id):
            if self.session.get(Link, endpoint) is None:
                raise NotFound(f"No link with id {endpoint}", operation="relate",
                               subject=str(endpoint))

        pair = and_(related_links.c.primary_link_id == primary_id,
                    related_links.c.related_link_id == related_id)
        existing = self.session.execute(select(related_links).where(pair)).first()
        if existing is not None:
            if relationship is not None and relationship != existing.relationship:
                self.session.execute(
                    update(related_links).where(pair).values(relationship=relationship))
            return False

        self.session.execute(related_links.insert().values(
            primary_link_id=primary_id,
            related_link_id=related_id,
            relationship=relationship,
        ))
        logger.debug("Related %s -> %s (%s)", primary_id, related_id, relationship)
        return True

    def exists(self, primary_id: uuid.UUID, related_id: uuid.UUID) -> bool:
        return self.session.execute(
            select(related_links.c.primary_link_id).where(
                related_links.c.primary_link_id == primary_id,
                related_links.c.related_link_id == related_id,
            )
        ).first() is not None

    def forward(self, primary_id: uuid.UUID) -> List[Tuple[str, Optional[str]]]:
        """(url, relationship) for every edge starting at the link."""
        rows = self.session.execute(
            select(Link.url, related_links.c.relationship)
            .join(related_links, Link.id == related_links.c.related_link_id)
            .where(related_links.c.primary_link_id == primary_id)
            .order_by(Link.created_at, Link.id)
        )
        return [(row.url, row.relationship) for row in rows]

    def inverse(self, link_id: uuid.UUID) -> List[uuid.UUID]:
        """Identifiers of links with an edge ending at the link."""
        return list(self.session.scalars(
            select(related_links.c.primary_link_id)
            .where(related_links.c.related_link_id == link_id)
        ))

    def delete(self, primary_id: Optional[uuid.UUID] = None,
               related_id: Optional[uuid.UUID] = None) -> int:
        """
        Remove edges matching the given endpoint(s).

        Raises:
            ValidationError: if neither endpoint is given
        """
        if primary_id is None and related_id is None:
            raise ValidationError("Primary or related link ID required", operation="unrelate")
        conditions = []
        if primary_id is not None:
            conditions.append(related_links.c.primary_link_id == primary_id)
        if related_id is not None:
            conditions.append(related_links.c.related_link_id == related_id)
        result = self.session.execute(delete(related_links).where(and_(*conditions)))
        return result.rowcount
