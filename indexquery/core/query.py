from __future__ import annotations

"""
Entry points of the filter DSL.

Example:
    posts = query(
        select(Post).where(Post.user_id == user.id),
        {"with": {"title": "DSLs are awesome"}},
        lambda q: (
            q.filter_field("posted")
             .filter_field("title", contains="title")
             .filter_field("posted_date",
                           greater_than_or_equal_to="from_posted_date",
                           less_than="to_posted_date")
             .filter_field(["comments", "author", "name"],
                           equal_to="comment_author_name")
             .order_by("posted_date DESC, posts.created_at DESC")
        ),
    )
"""

from typing import Any, Callable, List, Mapping, Optional, Union

import structlog
from sqlalchemy.orm import Session
from sqlalchemy.sql.selectable import Select

from indexquery.core.builder import QueryBuilder, root_entity
from indexquery.core.children import (
    child_relationship,
    eager_load,
    fetch_children,
    parent_attribute_for,
)
from indexquery.core.config import IndexQueryConfig, QueryOptions, get_default_config
from indexquery.core.definition import QueryDefinition
from indexquery.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

Configure = Union[Callable[[QueryDefinition], Any], QueryDefinition]
Options = Union[QueryOptions, Mapping[str, Any], None]


def build_definition(configure: Optional[Configure]) -> QueryDefinition:
    """Run the configure callback on a fresh definition, or pass one through."""
    if isinstance(configure, QueryDefinition):
        return configure

    definition = QueryDefinition()
    if configure is None:
        return definition
    if not callable(configure):
        raise ConfigurationError(
            f"configure must be callable or a QueryDefinition, got {type(configure).__name__}"
        )
    configure(definition)
    return definition


def query(
        base_scope: Select,
        options: Options = None,
        configure: Optional[Configure] = None,
        *,
        config: Optional[IndexQueryConfig] = None,
) -> Select:
    """
    Build a query by applying filters to ``base_scope``.

    Args:
        base_scope: Select to build the query on
        options: ``{"with": {runtime_key: value}}``; other keys are ignored
        configure: Callback receiving a QueryDefinition, or a definition
        config: Settings; the package default when omitted

    Returns:
        A Select, ready to be extended (pagination etc.) and executed

    Raises:
        UnknownOperator: If a declared operator is unknown and its key is present
        InvalidFieldPathError: If a filtered field path does not resolve
    """
    config = config or get_default_config()
    definition = build_definition(configure)
    filters = QueryOptions.coerce(options, config).filters

    return QueryBuilder.apply(base_scope, definition, filters, config)


def query_children(
        session: Session,
        child_association: str,
        base_scope: Select,
        options: Options = None,
        configure: Optional[Configure] = None,
        *,
        parent_attribute: Optional[str] = None,
        config: Optional[IndexQueryConfig] = None,
) -> List[Any]:
    """
    Return the children of the parents matched by the same filters as ``query``.

    The parents are fetched with ``child_association`` eager loaded, every
    child gets its parent attribute set to the loaded parent, and the children
    are returned flattened in parent order.

    Args:
        session: Session used to execute the parent query
        child_association: Name of the parent's collection relationship
        base_scope: Select of the parent entity
        options: Same shape as for ``query``
        configure: Same as for ``query``
        parent_attribute: Attribute on the child referring to the parent;
            defaults to the relationship's declared inverse
        config: Settings; the package default when omitted

    Returns:
        List of child records

    Raises:
        ConfigurationError: If the association or parent attribute is unusable
    """
    parent_class = root_entity(base_scope)
    relationship = child_relationship(parent_class, child_association)
    attribute = parent_attribute_for(relationship, parent_attribute)

    statement = query(
        eager_load(base_scope, parent_class, child_association),
        options,
        configure,
        config=config,
    )
    return fetch_children(session, statement, child_association, attribute)
