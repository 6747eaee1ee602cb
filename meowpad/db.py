"""
Database interface for meowpad.

Owns the SQLAlchemy engine for one SQLite archive file, creates the schema
on first use, and hands out transactions. Each command runs inside exactly
one ``Database.transaction()`` block: every store call in the block shares
the session, and the block commits only if all of them succeed.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Union

from sqlalchemy import create_engine, event, func, inspect, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from meowpad.errors import StorageError
from meowpad.models import LINK_CONTENT_DDL, Base, Link, Note, Tag, related_links

logger = logging.getLogger(__name__)


class Database:
    """
    A single meowpad archive.

    The location is passed in explicitly; the database never consults the
    user configuration itself.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None, url: Optional[str] = None,
                 echo: bool = False, readonly: bool = False):
        """
        Open (and if needed create) an archive.

        Args:
            path: SQLite file path. Parent directories are created.
            url: Full SQLite URL (overrides path), e.g. ``sqlite://`` for an
                in-memory archive.
            echo: Log every SQL statement.
            readonly: Open an existing file without writing to it; the schema
                is neither created nor checked.

        Examples:
            Database(path="~/notes/meowpad.db")
            Database(url="sqlite://")
            Database(path="other.db", readonly=True)
        """
        self.readonly = readonly
        if url:
            self.url = url
            self.path = None
        elif path and readonly:
            self.path = Path(path).expanduser().resolve()
            self.url = f"sqlite:///file:{self.path}?mode=ro&uri=true"
        elif path:
            self.path = Path(path).expanduser()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.url = f"sqlite:///{self.path}"
        else:
            raise ValueError("Database requires a path or a url")

        if not self.url.startswith("sqlite:"):
            raise ValueError(f"Only SQLite archives are supported, got {self.url}")

        self.engine = create_engine(
            self.url,
            poolclass=NullPool if self.path else None,
            echo=echo,
        )
        event.listen(self.engine, "connect",
                     self._configure_readonly if readonly else self._configure_sqlite)
        # pysqlite's implicit transaction handling defers BEGIN; take over so
        # the whole command is one transaction from its first statement.
        event.listen(self.engine, "begin", self._begin)

        self.Session = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

        if not readonly:
            self._create_schema()

    @staticmethod
    def _configure_sqlite(dbapi_conn, connection_record):
        """Enable foreign keys and WAL for every new connection."""
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()

    @staticmethod
    def _configure_readonly(dbapi_conn, connection_record):
        # switching the journal mode would write to the file
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    def is_archive(self) -> bool:
        """True if every meowpad table exists in this database."""
        try:
            tables = set(inspect(self.engine).get_table_names())
        except SQLAlchemyError as e:
            raise StorageError(f"Unable to read {self.url}: {e}",
                               operation="open", subject=self.url) from e
        return set(Base.metadata.tables).union({"link_content"}) <= tables

    @staticmethod
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    def _create_schema(self):
        try:
            Base.metadata.create_all(self.engine)
            with self.engine.begin() as conn:
                conn.execute(text(LINK_CONTENT_DDL))
        except SQLAlchemyError as e:
            raise StorageError(f"Unable to create schema at {self.url}: {e}",
                               operation="open", subject=self.url) from e

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Yields:
            SQLAlchemy session with automatic commit/rollback. Engine failures
            are re-raised as StorageError; meowpad errors pass through.
        """
        session = self.Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(str(e.orig if getattr(e, "orig", None) else e),
                               operation="database") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self):
        """
        Open one transaction and yield the stores bound to it.

        Yields:
            :class:`meowpad.store.Stores`
        """
        from meowpad.store import Stores

        with self.session() as session:
            yield Stores(session)

    def stats(self) -> dict:
        """Row counts for the archive."""
        with self.session() as session:
            stats = {
                "primary_links": session.scalar(
                    select(func.count(Link.id)).where(Link.is_primary.is_(True))),
                "secondary_links": session.scalar(
                    select(func.count(Link.id)).where(Link.is_primary.is_(False))),
                "notes": session.scalar(select(func.count(Note.id))),
                "tags": session.scalar(select(func.count(Tag.id))),
                "relations": session.scalar(select(func.count()).select_from(related_links)),
                "database_url": self.url,
            }
            if self.path and self.path.exists():
                stats["database_size"] = self.path.stat().st_size
            return stats

    def dispose(self):
        """Release pooled connections."""
        self.engine.dispose()
