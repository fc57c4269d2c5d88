"""Base classes for models queried with indexquery."""

from typing import Any

from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.attributes import set_committed_value


def attach_parent(child: Any, attribute: str, parent: Any) -> None:
    """Set ``child.<attribute>`` to ``parent`` as already-loaded state.

    No lazy load is triggered and the session sees no pending change.
    """
    set_committed_value(child, attribute, parent)


class ParentLinkMixin:
    """Mixin for child models whose parent is linked by ``query_children``."""

    def attach_parent(self, parent: Any, attribute: str) -> None:
        """Set ``attribute`` to ``parent`` without loading or dirtying it.

        Args:
            parent: The already-loaded parent record
            attribute: Name of the many-to-one relationship to the parent
        """
        attach_parent(self, attribute, parent)


class Base(DeclarativeBase):
    """Declarative base for indexquery models."""
