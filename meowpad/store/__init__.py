"""
Stores for the meowpad archive.

All stores in a ``Stores`` bundle share one session, and so one
transaction. Obtain a bundle from :meth:`meowpad.db.Database.transaction`.
"""
from sqlalchemy.orm import Session

from meowpad.store.associations import AssociationStore, LinkOwner, NoteOwner, Owner
from meowpad.store.links import LinkStore
from meowpad.store.notes import NoteStore
from meowpad.store.relations import RelationStore
from meowpad.store.tags import TagStore


class Stores:
    """The stores of one transaction."""

    def __init__(self, session: Session):
        self.session = session
        self.tags = TagStore(session)
        self.associations = AssociationStore(session)
        self.relations = RelationStore(session)
        self.notes = NoteStore(session, self.associations)
        self.links = LinkStore(session, self.associations, self.relations, self.notes)


__all__ = [
    "Stores",
    "TagStore",
    "AssociationStore",
    "LinkOwner",
    "NoteOwner",
    "Owner",
    "LinkStore",
    "NoteStore",
    "RelationStore",
]
