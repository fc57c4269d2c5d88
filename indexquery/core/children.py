from __future__ import annotations

"""
Fetch the children of filtered parents.

Reuses a parent query definition to return the flattened children of every
matching parent, each child already linked to its loaded parent.
"""

from typing import Any, Iterable, List, Optional, Type

import structlog
from sqlalchemy import inspect
from sqlalchemy.orm import RelationshipProperty, Session, joinedload
from sqlalchemy.sql.selectable import Select

from indexquery.models.base import ParentLinkMixin, attach_parent
from indexquery.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def child_relationship(parent_class: Type[Any], child_association: str) -> RelationshipProperty:
    """
    Look up the collection relationship ``child_association`` on ``parent_class``.

    Raises:
        ConfigurationError: If it is missing or not a collection
    """
    relationship = inspect(parent_class).relationships.get(child_association)
    if relationship is None:
        raise ConfigurationError(
            f"{parent_class.__name__} has no relationship '{child_association}'",
            config_key="child_association",
        )
    if not relationship.uselist:
        raise ConfigurationError(
            f"{parent_class.__name__}.{child_association} is not a collection",
            config_key="child_association",
        )
    return relationship


def parent_attribute_for(
        relationship: RelationshipProperty, parent_attribute: Optional[str] = None
) -> str:
    """
    Name of the attribute on the child that points back to the parent.

    Uses ``parent_attribute`` when given, otherwise the inverse declared on the
    relationship through ``back_populates`` or ``backref``.

    Raises:
        ConfigurationError: If no name is given and no inverse is declared, or
            the name is not a relationship of the child
    """
    name = parent_attribute or relationship.back_populates
    if not name and relationship.backref:
        backref = relationship.backref
        name = backref[0] if isinstance(backref, tuple) else backref

    child_class = relationship.mapper.class_
    if not name:
        raise ConfigurationError(
            f"Cannot tell which attribute of {child_class.__name__} refers to its "
            f"parent; declare back_populates on {relationship} or pass parent_attribute",
            config_key="parent_attribute",
        )

    if name not in inspect(child_class).relationships:
        raise ConfigurationError(
            f"{child_class.__name__} has no relationship '{name}'",
            config_key="parent_attribute",
        )
    return name


def eager_load(base_scope: Select, parent_class: Type[Any], child_association: str) -> Select:
    """Return ``base_scope`` with the child collection loaded in the same query."""
    return base_scope.options(joinedload(getattr(parent_class, child_association)))


def children_of(
        parents: Iterable[Any], child_association: str, parent_attribute: str
) -> List[Any]:
    """
    Flatten the loaded children of ``parents``, linking each to its parent.

    Order is parent order, then child order within each parent.
    """
    children: List[Any] = []
    for parent in parents:
        for child in getattr(parent, child_association):
            if isinstance(child, ParentLinkMixin):
                child.attach_parent(parent, parent_attribute)
            else:
                attach_parent(child, parent_attribute, parent)
            children.append(child)
    return children


def fetch_children(
        session: Session,
        statement: Select,
        child_association: str,
        parent_attribute: str,
) -> List[Any]:
    """
    Execute a parent statement that eager loads ``child_association``.

    Returns:
        Flattened children of the matching parents
    """
    parents = session.scalars(statement).unique().all()
    children = children_of(parents, child_association, parent_attribute)
    logger.debug(
        "Fetched children",
        association=child_association,
        parents=len(parents),
        children=len(children),
    )
    return children
