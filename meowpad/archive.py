"""
Commands over a meowpad archive.

Every public method is one command and runs in exactly one transaction.
Anything slow or interactive (fetching the page, waiting on the editor)
happens before the transaction is opened, so the database is never held
across a network round trip or a user's editing session.
"""
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from meowpad.db import Database
from meowpad.editor import edit
from meowpad.errors import NotFound, ValidationError
from meowpad.extractor import ContentExtractor, PageInfo
from meowpad.lifecycle import Transition
from meowpad.models import Link, Note, Tag
from meowpad.query import Lookup
from meowpad.utils import format_timestamp, now, slugify, validate_url

logger = logging.getLogger(__name__)


@dataclass
class AddResult:
    """Outcome of adding a link."""
    link_id: uuid.UUID
    transition: Transition
    note_id: Optional[uuid.UUID] = None
    related_id: Optional[uuid.UUID] = None


@dataclass
class LinkDetail:
    """Everything ``show`` displays about one link."""
    link: Link
    tags: List[Tag] = field(default_factory=list)
    note: Optional[Note] = None
    related: List[Tuple[str, Optional[str]]] = field(default_factory=list)


def _tag_pairs(tags: Iterable[str]) -> List[Tuple[str, str]]:
    """(name, slug) for each tag, validated before anything is written."""
    return [(name.strip(), slugify(name)) for name in tags]


class Archive:
    """
    The meowpad command layer.

    Args:
        db: Open archive
        extractor: Page extractor; one with default settings is created when
            omitted
        editor: Callable taking initial text and returning the edited text
        fetch: Whether ``add_link`` fetches pages unless told otherwise
    """

    def __init__(self, db: Database, extractor: Optional[ContentExtractor] = None,
                 editor: Optional[Callable[[str], str]] = None, fetch: bool = True):
        self.db = db
        self.extractor = extractor or ContentExtractor()
        self.editor = editor or edit
        self.fetch = fetch

    def add_link(self, url: str, tags: Iterable[str] = (), title: Optional[str] = None,
                 description: Optional[str] = None, note: Optional[str] = None,
                 edit_note: bool = False, related_link: Optional[str] = None,
                 relation: Optional[str] = None, fetch: Optional[bool] = None,
                 refresh: bool = False) -> AddResult:
        """
        Bookmark a URL.

        New URLs are inserted, secondary links are promoted and, with
        ``refresh``, existing bookmarks get fresh metadata and content.

        Args:
            url: http(s) URL to bookmark
            tags: Tag names for the link (and its note)
            title: Overrides the fetched page title
            description: Overrides the fetched excerpt
            note: Note text, stored under the URL as its title
            edit_note: Open the editor for the note when ``note`` is not given
            related_link: URL this link relates to; created as a secondary
                link if unknown
            relation: Label for the relation
            fetch: Fetch the page (defaults to the archive setting)
            refresh: Update an existing bookmark instead of failing

        Raises:
            ValidationError: for a bad URL or tag
            ExternalFetchError: if the page cannot be fetched
            Conflict: if the URL is already bookmarked and ``refresh`` is off
        """
        url = validate_url(url)
        if related_link is not None:
            related_link = validate_url(related_link)
        tag_pairs = _tag_pairs(tags)

        page = None
        if self.fetch if fetch is None else fetch:
            page = self.extractor.extract(url)
        title, description, content = self._page_fields(page, title, description)

        if note is None and edit_note:
            note = self.editor("")

        timestamp = now()
        with self.db.transaction() as stores:
            link_id, outcome = stores.links.add(url, title, description, content,
                                                timestamp=timestamp, refresh=refresh)
            tag_ids = [stores.tags.require(name, slug, timestamp) for name, slug in tag_pairs]
            for tag_id in tag_ids:
                stores.associations.link_tag(link_id, tag_id)

            result = AddResult(link_id=link_id, transition=outcome)
            if note:
                result.note_id = stores.notes.upsert(note, url, link_id, timestamp)
                for tag_id in tag_ids:
                    stores.associations.note_tag(result.note_id, tag_id)

            if related_link is not None:
                result.related_id = stores.links.ensure(related_link, timestamp)
                stores.relations.relate(link_id, result.related_id, relation)

        logger.info("Added bookmark for <%s>", url)
        return result

    @staticmethod
    def _page_fields(page: Optional[PageInfo], title: Optional[str],
                     description: Optional[str]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        if page is None:
            return title, description, None
        if title is None and page.title:
            title = page.title
        if description is None:
            description = page.excerpt
        return title, description, page.plain_text.strip()

    def add_note(self, title: Optional[str] = None, tags: Iterable[str] = (),
                 message: Optional[str] = None) -> Optional[Note]:
        """
        Write a standalone note.

        With ``message`` the text is appended to the note's existing content;
        otherwise the editor opens on it. The title defaults to the current
        timestamp.

        Returns:
            The saved note, or None when there was nothing to add
        """
        tag_pairs = _tag_pairs(tags)
        timestamp = now()
        title = title or format_timestamp(timestamp)

        if message is None:
            with self.db.transaction() as stores:
                existing = stores.notes.get_by_title(title)
                current = existing.content if existing is not None else ""
            text = self.editor(current)
            if not text.strip():
                return None
        elif not message:
            return None

        with self.db.transaction() as stores:
            if message is None:
                note_id = stores.notes.upsert(text, title, timestamp=timestamp)
            else:
                note_id = stores.notes.append(message, title, timestamp=timestamp)
            for name, slug in tag_pairs:
                stores.associations.note_tag(note_id, stores.tags.require(name, slug, timestamp))
            note = stores.notes.get(note_id)

        logger.info("Added note <%s>", title)
        return note

    def remove(self, item: str) -> List[str]:
        """
        Remove the bookmark and the note known as ``item``.

        A bookmark other links still relate to is demoted rather than
        deleted.

        Returns:
            Which kinds of item were removed, e.g. ``["link", "note"]``
        """
        which = []
        with self.db.transaction() as stores:
            if stores.links.remove(Lookup.from_term(item)) is not None:
                which.append("link")
            note = stores.notes.get_by_title(item)
            if note is not None:
                stores.notes.delete(note.id)
                which.append("note")
        return which

    def list_links(self, tags: Iterable[str] = ()) -> List[Link]:
        """Bookmarks carrying any of ``tags``, newest first."""
        slugs = [slugify(tag) for tag in tags]
        with self.db.transaction() as stores:
            return stores.links.list(slugs)

    def search(self, term: str) -> List[Link]:
        """Bookmarks whose page content matches ``term``."""
        with self.db.transaction() as stores:
            return stores.links.search(term)

    def show(self, term: str) -> LinkDetail:
        """
        A bookmark with its tags, note and related links.

        Raises:
            NotFound: if no bookmark matches ``term``
        """
        with self.db.transaction() as stores:
            link = stores.links.find(term)
            if link is None:
                raise NotFound(f"<{term}> not found", operation="show", subject=term)
            return LinkDetail(
                link=link,
                tags=stores.associations.tags_for(link.id),
                note=stores.notes.get_by_link(link.id),
                related=stores.relations.forward(link.id),
            )

    def tags(self) -> List[Tag]:
        """All tags by slug."""
        with self.db.transaction() as stores:
            return stores.tags.all()

    def merge(self, other: Union[str, Path]):
        """
        Union another archive file into this one.

        The other file is opened read-only and must already hold a meowpad
        archive.

        Raises:
            NotFound: if there is no file at ``other``
            ValidationError: if the file is not a meowpad archive
        """
        from meowpad.merge import merge_archives

        other = Path(other).expanduser()
        if not other.exists():
            raise NotFound(f"No archive at {other}", operation="merge", subject=str(other))
        source = Database(path=other, readonly=True)
        try:
            if not source.is_archive():
                raise ValidationError(f"{other} is not a meowpad archive",
                                      operation="merge", subject=str(other))
            return merge_archives(self.db, source)
        finally:
            source.dispose()
