"""
Link lifecycle state machine.

A URL is in one of three states: absent, secondary (known only because some
other link relates to it) or primary (a bookmark in its own right). This
module decides, without touching storage, what an operation does to a link
given its current state and how many other links point at it. The link
store then carries out the returned effects in order.

    ABSENT    --add-->     PRIMARY    insert primary row, store content
    ABSENT    --relate-->  SECONDARY  insert secondary row
    SECONDARY --add-->     PRIMARY    promote: new metadata, store content
    PRIMARY   --refresh--> PRIMARY    new metadata, replace content
    PRIMARY   --remove-->  ABSENT     when nothing points at it
    PRIMARY   --remove-->  SECONDARY  demote when other links point at it

Adding a URL that is already primary is a conflict; relating to a URL that
already exists reuses the row unchanged.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from meowpad.errors import Conflict


class LinkState(Enum):
    ABSENT = "absent"
    SECONDARY = "secondary"
    PRIMARY = "primary"

    @classmethod
    def of(cls, link) -> "LinkState":
        """State of a loaded link row (or None)."""
        if link is None:
            return cls.ABSENT
        return cls.PRIMARY if link.is_primary else cls.SECONDARY


class Operation(Enum):
    ADD = "add"
    REFRESH = "refresh"
    RELATE = "relate"
    REMOVE = "remove"


class Effect(Enum):
    INSERT_PRIMARY = "insert_primary"
    INSERT_SECONDARY = "insert_secondary"
    SET_METADATA = "set_metadata"
    MARK_PRIMARY = "mark_primary"
    MARK_SECONDARY = "mark_secondary"
    STORE_CONTENT = "store_content"
    DROP_CONTENT = "drop_content"
    DROP_TAGS = "drop_tags"
    DROP_OUTBOUND = "drop_outbound"
    HARD_DELETE = "hard_delete"


@dataclass(frozen=True)
class Transition:
    """Outcome of applying an operation to a link."""
    before: LinkState
    after: LinkState
    effects: Tuple[Effect, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.effects)

    @property
    def promoted(self) -> bool:
        return self.before is LinkState.SECONDARY and self.after is LinkState.PRIMARY

    @property
    def demoted(self) -> bool:
        return self.before is LinkState.PRIMARY and self.after is LinkState.SECONDARY


def transition(state: LinkState, inbound: int, operation: Operation,
               subject: Optional[str] = None) -> Transition:
    """
    Compute the next state and the side effects of an operation.

    Args:
        state: Current state of the link
        inbound: Number of relations from other links that point at it
        operation: What the caller wants to do
        subject: URL used in error messages

    Raises:
        Conflict: when adding a URL that is already a primary link, or
            refreshing one that is not.
    """
    if operation is Operation.ADD:
        if state is LinkState.ABSENT:
            return Transition(state, LinkState.PRIMARY,
                              (Effect.INSERT_PRIMARY, Effect.STORE_CONTENT))
        if state is LinkState.SECONDARY:
            # A secondary link never carries content, so storing is safe.
            return Transition(state, LinkState.PRIMARY,
                              (Effect.SET_METADATA, Effect.MARK_PRIMARY, Effect.STORE_CONTENT))
        raise Conflict(f"Unable to insert <{subject}>; is it a duplicate?",
                       operation="add", subject=subject)

    if operation is Operation.REFRESH:
        if state is not LinkState.PRIMARY:
            raise Conflict(f"<{subject}> is not a bookmark", operation="refresh", subject=subject)
        return Transition(state, state,
                          (Effect.SET_METADATA, Effect.DROP_CONTENT, Effect.STORE_CONTENT))

    if operation is Operation.RELATE:
        if state is LinkState.ABSENT:
            return Transition(state, LinkState.SECONDARY, (Effect.INSERT_SECONDARY,))
        return Transition(state, state)

    if operation is Operation.REMOVE:
        if state is not LinkState.PRIMARY:
            return Transition(state, state)
        if inbound > 0:
            return Transition(state, LinkState.SECONDARY,
                              (Effect.MARK_SECONDARY, Effect.DROP_TAGS,
                               Effect.DROP_OUTBOUND, Effect.DROP_CONTENT))
        return Transition(state, LinkState.ABSENT, (Effect.HARD_DELETE,))

    raise ValueError(f"Unknown operation {operation!r}")
