"""
Archive merging for meowpad.

Unions a second, independently populated archive into this one. Rows are
matched by their natural keys (links by URL, tags by slug, notes by title);
rows the target has never seen keep their source identifiers, which are
time ordered and so do not collide across archives. Where both archives
know a row, the target's copy wins, except that a secondary link is
promoted when the source has it bookmarked.
"""
import logging
import uuid
from dataclasses import dataclass, asdict
from typing import Dict, List

from sqlalchemy import select

from meowpad.db import Database
from meowpad.lifecycle import LinkState
from meowpad.models import Link, Note, Tag, item_tags, related_links
from meowpad.query import Lookup

logger = logging.getLogger(__name__)


@dataclass
class MergeStats:
    """Row counts of a merge."""
    links_added: int = 0
    links_promoted: int = 0
    links_skipped: int = 0
    tags_added: int = 0
    notes_added: int = 0
    notes_skipped: int = 0
    associations_added: int = 0
    relations_added: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class _Snapshot:
    links: List[Link]
    tags: List[Tag]
    notes: List[Note]
    associations: list
    relations: list


def _read(source: Database) -> _Snapshot:
    with source.transaction() as stores:
        session = stores.session
        links = list(session.scalars(select(Link).order_by(Link.created_at, Link.id)))
        for link in links:
            link.content = stores.links.get_content(link.id)
        return _Snapshot(
            links=links,
            tags=stores.tags.all(),
            notes=list(session.scalars(select(Note).order_by(Note.created_at, Note.id))),
            associations=list(session.execute(select(item_tags))),
            relations=list(session.execute(select(related_links))),
        )


def merge_archives(target: Database, source: Database) -> MergeStats:
    """
    Merge ``source`` into ``target`` in one target transaction.

    Args:
        target: Archive receiving the rows
        source: Archive to read from; it is not modified

    Returns:
        What was added, promoted and skipped
    """
    snapshot = _read(source)
    stats = MergeStats()
    link_ids: Dict[uuid.UUID, uuid.UUID] = {}
    tag_ids: Dict[uuid.UUID, uuid.UUID] = {}
    note_ids: Dict[uuid.UUID, uuid.UUID] = {}

    with target.transaction() as stores:
        session = stores.session

        for tag in snapshot.tags:
            existing = stores.tags.get_by_slug(tag.slug)
            if existing is not None:
                tag_ids[tag.id] = existing.id
                continue
            session.add(Tag(id=tag.id, name=tag.name, slug=tag.slug,
                            created_at=tag.created_at, modified_at=tag.modified_at))
            tag_ids[tag.id] = tag.id
            stats.tags_added += 1

        for link in snapshot.links:
            existing = stores.links.get(Lookup(url=link.url))
            if existing is None:
                session.add(Link(id=link.id, url=link.url, title=link.title,
                                 description=link.description, is_primary=link.is_primary,
                                 created_at=link.created_at, modified_at=link.modified_at))
                session.flush()
                if link.content:
                    stores.links.store_content(link.id, link.content)
                link_ids[link.id] = link.id
                stats.links_added += 1
            elif link.is_primary and LinkState.of(existing) is LinkState.SECONDARY:
                stores.links.add(link.url, link.title, link.description, link.content,
                                 timestamp=link.modified_at)
                link_ids[link.id] = existing.id
                stats.links_promoted += 1
            else:
                link_ids[link.id] = existing.id
                stats.links_skipped += 1
        session.flush()

        for note in snapshot.notes:
            existing = stores.notes.get_by_title(note.title)
            if existing is not None:
                note_ids[note.id] = existing.id
                stats.notes_skipped += 1
                continue
            session.add(Note(id=note.id, title=note.title, content=note.content,
                             link_id=link_ids.get(note.link_id) if note.link_id else None,
                             created_at=note.created_at, modified_at=note.modified_at))
            note_ids[note.id] = note.id
            stats.notes_added += 1
        session.flush()

        for row in snapshot.associations:
            tag_id = tag_ids[row.tag_id]
            if row.link_id is not None:
                added = stores.associations.link_tag(link_ids[row.link_id], tag_id)
            else:
                added = stores.associations.note_tag(note_ids[row.note_id], tag_id)
            stats.associations_added += int(added)

        for row in snapshot.relations:
            primary_id = link_ids[row.primary_link_id]
            related_id = link_ids[row.related_link_id]
            if stores.relations.exists(primary_id, related_id):
                continue
            stores.relations.relate(primary_id, related_id, row.relationship)
            stats.relations_added += 1

    logger.info("Merged %s into %s: %s", source.url, target.url, stats.to_dict())
    return stats
