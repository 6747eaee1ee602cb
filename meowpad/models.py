"""
SQLAlchemy models for meowpad.

This module defines the archive schema: links, notes, tags, the item/tag
association table, link-to-link relations, and the FTS5 table that holds
link content for full-text search.

Identifiers are 16-byte UUIDv7 blobs and timestamps are second-resolution
ISO-8601 strings, so two archives can be merged row for row.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Column, ForeignKey, Index, LargeBinary,
    MetaData, String, Table, Text, UniqueConstraint, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from meowpad.ids import new_id
from meowpad.utils import format_timestamp, parse_timestamp


class TableId(TypeDecorator):
    """UUID stored as a 16-byte BLOB."""

    impl = LargeBinary(16)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = uuid.UUID(value)
        return value.bytes

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return uuid.UUID(bytes=bytes(value))


class Instant(TypeDecorator):
    """Timezone-aware datetime stored as 'YYYY-MM-DDTHH:MM:SSZ'."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = parse_timestamp(value)
        return format_timestamp(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return parse_timestamp(value)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Link(Base):
    """
    A URL known to the archive.

    Attributes:
        id: Time-ordered identifier
        url: The URL, unique whether or not the link is primary
        title: Page or user-supplied title
        description: Page excerpt or user-supplied description
        is_primary: True for bookmarks, False for links that exist only as
            the target of a relation
        created_at: When the row was first inserted
        modified_at: Last promotion, demotion or refresh

    ``content`` is not a column. It lives in ``link_content`` and is
    attached to the instance by the link store when a single link is loaded.
    """
    __tablename__ = 'links'

    id: Mapped[uuid.UUID] = mapped_column(TableId, primary_key=True, default=new_id)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(Instant, nullable=False)

    content = None

    __table_args__ = (
        UniqueConstraint('url', name='uq_links_url'),
        CheckConstraint('length(id) = 16', name='ck_links_id_length'),
    )

    def __repr__(self):
        kind = "primary" if self.is_primary else "secondary"
        return f"<Link(id={self.id}, url='{self.url[:50]}', {kind})>"


Index('ix_links_created_at_desc', Link.created_at.desc())


class Note(Base):
    """Freeform text keyed by a unique title, optionally attached to a link."""
    __tablename__ = 'notes'

    id: Mapped[uuid.UUID] = mapped_column(TableId, primary_key=True, default=new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    link_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        TableId,
        ForeignKey('links.id', ondelete='CASCADE'),
        nullable=True,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(Instant, nullable=False)

    __table_args__ = (
        CheckConstraint('length(id) = 16', name='ck_notes_id_length'),
    )

    def __repr__(self):
        return f"<Note(id={self.id}, title='{self.title[:50]}')>"


class Tag(Base):
    """
    Tag for links and notes.

    ``slug`` is the identity of a tag; ``name`` is whatever the user typed
    most recently. Colons in a slug separate namespaces (``genre:jazz``).
    """
    __tablename__ = 'tags'

    id: Mapped[uuid.UUID] = mapped_column(TableId, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(Instant, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(Instant, nullable=False)

    __table_args__ = (
        CheckConstraint('length(id) = 16', name='ck_tags_id_length'),
    )

    @property
    def namespaces(self):
        """Slug segments before the last colon."""
        return self.slug.split(':')[:-1]

    def __repr__(self):
        return f"<Tag(id={self.id}, slug='{self.slug}')>"


# Association between a tag and exactly one owner, either a link or a note
item_tags = Table(
    'item_tags',
    Base.metadata,
    Column('tag_id', TableId, ForeignKey('tags.id', ondelete='CASCADE'), nullable=False),
    Column('link_id', TableId, ForeignKey('links.id', ondelete='CASCADE'), nullable=True),
    Column('note_id', TableId, ForeignKey('notes.id', ondelete='CASCADE'), nullable=True),
    CheckConstraint('(link_id IS NULL) != (note_id IS NULL)', name='ck_item_tags_one_owner'),
    Index('uq_item_tags_link', 'tag_id', 'link_id', unique=True,
          sqlite_where=text('link_id IS NOT NULL')),
    Index('uq_item_tags_note', 'tag_id', 'note_id', unique=True,
          sqlite_where=text('note_id IS NOT NULL')),
    Index('ix_item_tags_link_id', 'link_id'),
    Index('ix_item_tags_note_id', 'note_id'),
)


# Directed edge: primary_link_id relates to related_link_id
related_links = Table(
    'related_links',
    Base.metadata,
    Column('primary_link_id', TableId, ForeignKey('links.id', ondelete='CASCADE'), nullable=False),
    Column('related_link_id', TableId, ForeignKey('links.id', ondelete='CASCADE'), nullable=False),
    Column('relationship', Text, nullable=True),
    UniqueConstraint('primary_link_id', 'related_link_id', name='uq_related_links_pair'),
    Index('ix_related_links_related_link_id', 'related_link_id'),
)


# The FTS5 table is created from raw DDL, so it lives outside Base.metadata
# and create_all() never tries to build it as an ordinary table.
fts_metadata = MetaData()

link_content = Table(
    'link_content',
    fts_metadata,
    Column('link_id', String(36)),
    Column('content', Text),
)

LINK_CONTENT_DDL = """
    CREATE VIRTUAL TABLE IF NOT EXISTS link_content USING fts5(
        link_id UNINDEXED,
        content,
        tokenize='unicode61'
    )
"""
