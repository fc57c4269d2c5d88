from __future__ import annotations

"""
Query builder for declared field filters.

Walks a ``QueryDefinition`` and, for every operator whose runtime key is
present in the filter values, adds one predicate to the base ``Select``.
Column filters on the root entity go straight into its WHERE clause.
Filters on relationship paths are collected into a single correlated
``EXISTS`` subquery, where each relationship prefix is joined once through
its own alias, so the outer statement keeps one row per matching record.
"""

from typing import Any, Dict, Mapping, Optional, Tuple, Type

import structlog
from sqlalchemy import and_, inspect, select
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import ColumnProperty, aliased
from sqlalchemy.sql.selectable import Select

from indexquery.core.config import IndexQueryConfig, get_default_config
from indexquery.core.definition import FieldFilter, QueryDefinition
from indexquery.core.operators import Operator, build_predicate
from indexquery.utils.exceptions import (
    ConfigurationError,
    InvalidFieldPathError,
    UnknownOperator,
)

logger = structlog.get_logger(__name__)


def root_entity(scope: Select) -> Type[Any]:
    """
    Return the mapped class a ``Select`` is built on.

    Raises:
        ConfigurationError: If the statement does not select a mapped entity
    """
    descriptions = scope.column_descriptions
    entity = descriptions[0].get("entity") if descriptions else None
    if entity is None:
        raise ConfigurationError(
            "Base scope must select a mapped entity, e.g. select(Post)"
        )
    return entity


class JoinTracker:
    """Remembers which relationship prefixes were joined, and their aliases."""

    def __init__(self) -> None:
        self.join_aliases: Dict[Tuple[str, ...], Any] = {}

    def is_joined(self, prefix: Tuple[str, ...]) -> bool:
        return prefix in self.join_aliases

    def get_alias(self, prefix: Tuple[str, ...]) -> Optional[Any]:
        return self.join_aliases.get(prefix)

    def add_alias(self, prefix: Tuple[str, ...], alias: Any) -> None:
        self.join_aliases[prefix] = alias


class QueryBuilder:
    """
    Applies a query definition and filter values to a base scope.

    A builder is meant for a single ``build`` call; ``apply`` creates one.
    """

    def __init__(
            self,
            definition: QueryDefinition,
            filters: Mapping[str, Any],
            config: Optional[IndexQueryConfig] = None,
    ) -> None:
        self.definition = definition
        self.filters = filters
        self.config = config or get_default_config()
        self._joins = JoinTracker()
        self._root_alias: Any = None
        self._related: Optional[Select] = None

    @classmethod
    def apply(
            cls,
            base_scope: Select,
            definition: QueryDefinition,
            filters: Mapping[str, Any],
            config: Optional[IndexQueryConfig] = None,
    ) -> Select:
        """
        Build the filtered, ordered query.

        Args:
            base_scope: Select statement the filters are added to
            definition: Declared field filters and ordering
            filters: Runtime key to value
            config: Settings; the package default when omitted

        Returns:
            A new Select returning each matching record once; nothing is executed

        Raises:
            UnknownOperator: If a declared operator has no handler and its key is present
            InvalidFieldPathError: If a filtered field path does not resolve
        """
        return cls(definition, filters, config).build(base_scope)

    def build(self, base_scope: Select) -> Select:
        query = base_scope
        model = root_entity(base_scope)

        for field_filter in self.definition.fields:
            query = self._apply_field_filter(query, model, field_filter)

        if self._related is not None:
            query = query.where(self._related.exists())

        if self.definition.ordering:
            query = query.order_by(*self.definition.ordering)

        return query

    def _apply_field_filter(
            self, query: Select, model: Type[Any], field_filter: FieldFilter
    ) -> Select:
        for operator_name, runtime_key in field_filter.operators:
            if runtime_key not in self.filters:
                logger.debug(
                    "Skipping filter without value",
                    field=field_filter.name,
                    key=runtime_key,
                )
                continue

            try:
                operator = Operator.parse(operator_name, field=field_filter.name)
            except UnknownOperator as e:
                logger.error(str(e), field=field_filter.name, key=runtime_key)
                raise

            value = self.filters[runtime_key]
            if len(field_filter.path) == 1:
                column = self._column(model, model, field_filter)
                query = query.where(self._predicate(operator, column, value))
            else:
                column = self._resolve_related_column(model, field_filter)
                self._related = self._related.where(
                    self._predicate(operator, column, value)
                )

            logger.debug(
                "Applied filter",
                field=field_filter.name,
                operator=operator.value,
                key=runtime_key,
            )

        return query

    def _predicate(self, operator: Operator, column: Any, value: Any) -> Any:
        return build_predicate(
            operator, column, value, self.config.case_insensitive_contains
        )

    def _related_scope(self, model: Type[Any]) -> Select:
        """
        Subquery over an alias of ``model``, correlated to the outer row by primary key.
        """
        if self._related is None:
            mapper = self._mapper(model, None)
            self._root_alias = aliased(model)
            keys = [mapper.get_property_by_column(column).key for column in mapper.primary_key]
            self._related = select(self._root_alias).where(
                and_(*(getattr(self._root_alias, key) == getattr(model, key) for key in keys))
            )
        return self._related

    def _resolve_related_column(self, model: Type[Any], field_filter: FieldFilter) -> Any:
        """
        Resolve a relationship path to a column, joining the subquery on the way.

        Returns:
            The column attribute on the alias of the last relationship
        """
        related = self._related_scope(model)
        path = field_filter.path
        current_entity: Any = self._root_alias
        current_class: Type[Any] = model

        for index, segment in enumerate(path[:-1]):
            prefix = path[: index + 1]
            relationship = self._relationship(current_class, segment, field_filter)

            if self._joins.is_joined(prefix):
                alias = self._joins.get_alias(prefix)
            else:
                alias = aliased(relationship.mapper.class_)
                related = related.join(getattr(current_entity, segment).of_type(alias))
                self._joins.add_alias(prefix, alias)
                logger.debug("Joined relationship", field=field_filter.name, path=".".join(prefix))

            current_entity = alias
            current_class = relationship.mapper.class_

        self._related = related
        return self._column(current_entity, current_class, field_filter)

    def _column(self, entity: Any, cls: Type[Any], field_filter: FieldFilter) -> Any:
        column_name = field_filter.path[-1]
        column_property = self._mapper(cls, field_filter).attrs.get(column_name)
        if not isinstance(column_property, ColumnProperty):
            self._invalid_path(
                f"'{column_name}' is not a column of {cls.__name__}",
                field_filter, column_name, cls,
            )
        return getattr(entity, column_name)

    def _relationship(self, cls: Type[Any], segment: str, field_filter: FieldFilter) -> Any:
        relationship = self._mapper(cls, field_filter).relationships.get(segment)
        if relationship is None:
            self._invalid_path(
                f"'{segment}' is not a relationship of {cls.__name__}",
                field_filter, segment, cls,
            )
        return relationship

    def _mapper(self, cls: Type[Any], field_filter: Optional[FieldFilter]) -> Any:
        try:
            return inspect(cls)
        except NoInspectionAvailable:
            if field_filter is None:
                raise ConfigurationError(f"{cls!r} is not a mapped class")
            self._invalid_path(
                f"{cls!r} is not a mapped class", field_filter, None, cls
            )

    @staticmethod
    def _invalid_path(
            message: str, field_filter: FieldFilter, segment: Optional[str], cls: Any
    ) -> None:
        logger.error("Invalid field path", field=field_filter.name, reason=message)
        raise InvalidFieldPathError(
            f"Invalid field path '{field_filter.name}': {message}",
            field=field_filter.name,
            segment=segment,
            model=getattr(cls, "__name__", repr(cls)),
        )
