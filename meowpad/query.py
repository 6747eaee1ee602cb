"""
Link query composition.

A ``LinkQuery`` is an immutable bundle of optional predicates. Each
predicate compiles to one SQLAlchemy clause carrying its own bound
parameters; the clauses are ANDed together in a fixed order, so the clause
list and the parameter list of the compiled statement always line up.
User input only ever reaches the database as a bound parameter.

Example:
    >>> q = LinkQuery().with_primacy(Primacy.PRIMARY).with_tags(["jazz"])
    >>> stmt = q.compile()
"""
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import and_, func, literal_column, or_, select
from sqlalchemy.dialects import sqlite
from sqlalchemy.sql import ColumnElement, Select

from meowpad.errors import ValidationError
from meowpad.ids import parse_id
from meowpad.models import Link, Note, Tag, item_tags, link_content


class Primacy(Enum):
    """Which links a query may return."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    EITHER = "either"


@dataclass(frozen=True)
class Lookup:
    """Exact lookup of a single link, by URL or by identifier (never both)."""
    url: Optional[str] = None
    id: Optional[uuid.UUID] = None

    def __post_init__(self):
        if (self.url is None) == (self.id is None):
            raise ValidationError("A lookup needs exactly one of a URL or an identifier",
                                  operation="lookup")

    @classmethod
    def from_term(cls, term: str) -> "Lookup":
        """Treat a canonical UUID string as an identifier, anything else as a URL."""
        identifier = parse_id(term)
        if identifier is not None:
            return cls(id=identifier)
        return cls(url=term)

    def __str__(self):
        return self.url if self.url is not None else str(self.id)


def fts_phrase(term: str) -> str:
    """Quote a user search term as a single FTS5 phrase."""
    stripped = term.strip()
    if not stripped:
        raise ValidationError("Search term must not be empty", operation="search", subject=term)
    return '"' + stripped.replace('"', '""') + '"'


def content_key(link_id: uuid.UUID) -> str:
    """Key under which a link's content is stored in ``link_content``."""
    return link_id.hex


@dataclass(frozen=True)
class LinkQuery:
    """
    Filters over the ``links`` table.

    Attributes:
        tags: Slugs; a link matches if it, or a note attached to it, carries
            any of them
        search: Term matched against link content (never titles or URLs)
        primacy: Restrict to primary or secondary links
        lookup: Exact URL or identifier
    """
    tags: Tuple[str, ...] = ()
    search: Optional[str] = None
    primacy: Primacy = Primacy.EITHER
    lookup: Optional[Lookup] = None

    def with_tags(self, slugs: Iterable[str]) -> "LinkQuery":
        return replace(self, tags=tuple(slugs))

    def with_search(self, term: Optional[str]) -> "LinkQuery":
        return replace(self, search=term)

    def with_primacy(self, primacy: Primacy) -> "LinkQuery":
        return replace(self, primacy=primacy)

    def with_lookup(self, lookup: Optional[Lookup]) -> "LinkQuery":
        return replace(self, lookup=lookup)

    def _primacy_clause(self) -> Optional[ColumnElement]:
        if self.primacy is Primacy.PRIMARY:
            return Link.is_primary.is_(True)
        if self.primacy is Primacy.SECONDARY:
            return Link.is_primary.is_(False)
        return None

    def _lookup_clause(self) -> Optional[ColumnElement]:
        if self.lookup is None:
            return None
        if self.lookup.id is not None:
            return Link.id == self.lookup.id
        return Link.url == self.lookup.url

    def _tag_clause(self) -> Optional[ColumnElement]:
        if not self.tags:
            return None
        tag_ids = select(Tag.id).where(Tag.slug.in_(list(self.tags)))
        direct = (
            select(item_tags.c.link_id)
            .where(item_tags.c.link_id.isnot(None), item_tags.c.tag_id.in_(tag_ids))
        )
        via_note = (
            select(Note.link_id)
            .join(item_tags, item_tags.c.note_id == Note.id)
            .where(Note.link_id.isnot(None), item_tags.c.tag_id.in_(tag_ids))
        )
        return or_(Link.id.in_(direct), Link.id.in_(via_note))

    def _search_clause(self) -> Optional[ColumnElement]:
        if self.search is None:
            return None
        matching = (
            select(link_content.c.link_id)
            .where(literal_column("link_content").op("MATCH")(fts_phrase(self.search)))
        )
        return func.lower(func.hex(Link.id)).in_(matching)

    def clauses(self) -> List[ColumnElement]:
        """WHERE clauses in compile order: primacy, lookup, tags, search."""
        candidates = [
            self._primacy_clause(),
            self._lookup_clause(),
            self._tag_clause(),
            self._search_clause(),
        ]
        return [c for c in candidates if c is not None]

    def compile(self) -> Select:
        """One SELECT over links, newest first."""
        stmt = select(Link)
        clauses = self.clauses()
        if clauses:
            stmt = stmt.where(and_(*clauses))
        return stmt.order_by(Link.created_at.desc(), Link.id.desc())

    def to_sql(self) -> Tuple[str, list]:
        """Render the statement for SQLite with its positional parameters."""
        compiled = self.compile().compile(dialect=sqlite.dialect())
        params = [compiled.params[name] for name in (compiled.positiontup or [])]
        return str(compiled), params
