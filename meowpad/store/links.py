"""
Link storage.

Links are rows in ``links``; their extracted page text lives in the FTS5
table ``link_content`` so it can be searched. This store owns the link
lifecycle: inserting bookmarks, creating secondary links as relation
targets, promoting secondaries that are later bookmarked, and demoting
bookmarks that other links still point at instead of deleting them.
"""
import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from meowpad.errors import Conflict
from meowpad.ids import new_id
from meowpad.lifecycle import Effect, LinkState, Operation, Transition, transition
from meowpad.models import Link, link_content
from meowpad.query import LinkQuery, Lookup, Primacy, content_key
from meowpad.store.associations import AssociationStore
from meowpad.store.notes import NoteStore
from meowpad.store.relations import RelationStore
from meowpad.utils import now

logger = logging.getLogger(__name__)

_ROW_EFFECTS = {Effect.SET_METADATA, Effect.MARK_PRIMARY, Effect.MARK_SECONDARY}


class LinkStore:
    """Links, their content, and the primary/secondary lifecycle."""

    def __init__(self, session: Session, associations: AssociationStore,
                 relations: RelationStore, notes: NoteStore):
        self.session = session
        self.associations = associations
        self.relations = relations
        self.notes = notes

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def insert(self, url: str, title: Optional[str] = None, description: Optional[str] = None,
               content: Optional[str] = None, primary: bool = True,
               timestamp: Optional[datetime] = None, merge: bool = False) -> uuid.UUID:
        """
        Insert a link row.

        Args:
            merge: If a link with this URL already exists, return its id
                instead of failing. Nothing about the existing row changes.

        Raises:
            Conflict: if the URL exists and ``merge`` is False
        """
        existing = self._by_url(url)
        if existing is not None:
            if merge:
                return existing.id
            raise Conflict(f"Unable to insert <{url}>; is it a duplicate?",
                           operation="insert", subject=url)

        timestamp = timestamp or now()
        link = Link(
            id=new_id(),
            url=url,
            title=title,
            description=description,
            is_primary=primary,
            created_at=timestamp,
            modified_at=timestamp,
        )
        self.session.add(link)
        self.session.flush()
        if content is not None:
            self.store_content(link.id, content)
        logger.debug("Inserted %s link <%s> (%s)", "primary" if primary else "secondary",
                     url, link.id)
        return link.id

    def get(self, lookup: Lookup, primacy: Primacy = Primacy.EITHER) -> Optional[Link]:
        """One link with its content attached, or None."""
        stmt = LinkQuery(primacy=primacy, lookup=lookup).compile()
        link = self.session.scalars(stmt).first()
        if link is not None:
            link.content = self.get_content(link.id)
        return link

    def find(self, term: str, primacy: Primacy = Primacy.PRIMARY) -> Optional[Link]:
        """Look a link up by URL or by identifier string."""
        return self.get(Lookup.from_term(term), primacy)

    def list(self, tags: Iterable[str] = (), search: Optional[str] = None) -> List[Link]:
        """
        Primary links, newest first.

        Args:
            tags: Slugs; links carrying any of them (directly or through an
                attached note) are returned
            search: Term matched against link content
        """
        query = LinkQuery(primacy=Primacy.PRIMARY).with_tags(tags).with_search(search)
        return list(self.session.scalars(query.compile()))

    def search(self, term: str) -> List[Link]:
        return self.list(search=term)

    def update(self, link: Link, timestamp: Optional[datetime] = None):
        """Write back title, description and primacy, stamping ``modified_at``."""
        timestamp = timestamp or now()
        self.session.execute(
            update(Link)
            .where(Link.id == link.id)
            .values(
                title=link.title,
                description=link.description,
                is_primary=link.is_primary,
                modified_at=timestamp,
            )
        )
        link.modified_at = timestamp

    def delete(self, link_id: uuid.UUID) -> bool:
        """
        Hard-delete a primary link and everything it owns.

        Associations, content, relations in both directions and attached
        notes go with it. Secondary links are left alone.

        Returns:
            True if a row was deleted
        """
        link = self.session.get(Link, link_id)
        if link is None or not link.is_primary:
            return False

        for note in self.notes.for_link(link_id):
            self.notes.delete(note.id)
        self.associations.delete_for_item(link_id)
        self.relations.delete(primary_id=link_id)
        self.relations.delete(related_id=link_id)
        self.delete_content(link_id)
        result = self.session.execute(
            delete(Link).where(Link.id == link_id, Link.is_primary.is_(True))
        )
        logger.info("Deleted link <%s>", link.url)
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def store_content(self, link_id: uuid.UUID, content: str):
        self.session.execute(link_content.insert().values(
            link_id=content_key(link_id),
            content=content,
        ))

    def get_content(self, link_id: uuid.UUID) -> Optional[str]:
        return self.session.scalar(
            select(link_content.c.content).where(link_content.c.link_id == content_key(link_id))
        )

    def delete_content(self, link_id: uuid.UUID):
        self.session.execute(
            delete(link_content).where(link_content.c.link_id == content_key(link_id))
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def add(self, url: str, title: Optional[str] = None, description: Optional[str] = None,
            content: Optional[str] = None, timestamp: Optional[datetime] = None,
            refresh: bool = False) -> Tuple[uuid.UUID, Transition]:
        """
        Make ``url`` a primary link.

        New URLs are inserted. A secondary link with this URL is promoted in
        place, keeping its identifier so relations pointing at it stay valid.
        With ``refresh``, an existing primary link gets the new metadata and
        content; without it, an existing primary link is a Conflict. A title,
        description or content left as None is not changed.
        """
        link = self._by_url(url)
        state = LinkState.of(link)
        operation = Operation.REFRESH if refresh and state is LinkState.PRIMARY else Operation.ADD
        outcome = transition(state, 0, operation, subject=url)
        link_id = self._apply(outcome, link, url, title, description, content, timestamp)
        if outcome.promoted:
            logger.info("Promoted <%s> to a primary link", url)
        return link_id, outcome

    def ensure(self, url: str, timestamp: Optional[datetime] = None) -> uuid.UUID:
        """Id of the link for ``url``, creating a secondary link if there is none."""
        link = self._by_url(url)
        outcome = transition(LinkState.of(link), 0, Operation.RELATE, subject=url)
        return self._apply(outcome, link, url, None, None, None, timestamp)

    def remove(self, lookup: Lookup, timestamp: Optional[datetime] = None) -> Optional[Transition]:
        """
        Remove a primary link.

        If other links relate to it, the link is demoted to secondary: it
        loses its tags, content and outgoing relations but keeps its row so
        the inbound relations still resolve. Otherwise it is deleted.

        Returns:
            The transition applied, or None if no primary link matched
        """
        link = self.get(lookup, Primacy.PRIMARY)
        if link is None:
            return None
        inbound = len(self.relations.inverse(link.id))
        outcome = transition(LinkState.PRIMARY, inbound, Operation.REMOVE, subject=link.url)
        self._apply(outcome, link, link.url, None, None, None, timestamp)
        if outcome.demoted:
            logger.info("Demoted <%s>; %d link(s) still relate to it", link.url, inbound)
        return outcome

    def _apply(self, outcome: Transition, link: Optional[Link], url: str,
               title: Optional[str], description: Optional[str], content: Optional[str],
               timestamp: Optional[datetime]) -> Optional[uuid.UUID]:
        timestamp = timestamp or now()
        link_id = link.id if link is not None else None

        for effect in outcome.effects:
            if effect is Effect.INSERT_PRIMARY:
                link_id = self.insert(url, title, description, primary=True, timestamp=timestamp)
            elif effect is Effect.INSERT_SECONDARY:
                link_id = self.insert(url, primary=False, timestamp=timestamp, merge=True)
            elif effect is Effect.SET_METADATA:
                # None means "not supplied"; keep what the link already has
                if title is not None:
                    link.title = title
                if description is not None:
                    link.description = description
            elif effect is Effect.MARK_PRIMARY:
                link.is_primary = True
            elif effect is Effect.MARK_SECONDARY:
                link.is_primary = False
            elif effect is Effect.STORE_CONTENT:
                if content:
                    self.store_content(link_id, content)
            elif effect is Effect.DROP_CONTENT:
                if outcome.after is LinkState.PRIMARY and not content:
                    # refresh without new content keeps the old content
                    continue
                self.delete_content(link_id)
                link.content = None
            elif effect is Effect.DROP_TAGS:
                self.associations.delete_for_item(link_id)
            elif effect is Effect.DROP_OUTBOUND:
                self.relations.delete(primary_id=link_id)
            elif effect is Effect.HARD_DELETE:
                self.delete(link_id)

        if link is not None and _ROW_EFFECTS.intersection(outcome.effects):
            self.update(link, timestamp)
        return link_id

    def _by_url(self, url: str) -> Optional[Link]:
        return self.session.scalar(select(Link).where(Link.url == url))
