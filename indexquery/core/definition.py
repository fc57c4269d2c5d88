from __future__ import annotations

"""
Declarative filter definitions.

A ``QueryDefinition`` records which fields can be filtered, with which
operators, and under which runtime key each operator's value is supplied.
It also records the ordering clause appended to the final query.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import text

from indexquery.core.operators import Operator

FieldPathLike = Union[str, Sequence[str]]
OperatorName = Union[str, Operator]


def normalize_field_path(path: FieldPathLike) -> Tuple[str, ...]:
    """
    Convert a field path to a tuple of segment names.

    Accepts ``"title"``, ``"comments.author.name"`` or
    ``["comments", "author", "name"]``.

    Args:
        path: Field name, dotted path or sequence of names

    Returns:
        Tuple of path segments

    Raises:
        ValueError: If the path is empty
    """
    if isinstance(path, str):
        segments = tuple(path.split("."))
    else:
        segments = tuple(str(segment) for segment in path)

    if not segments or any(not segment for segment in segments):
        raise ValueError(f"Invalid field path: {path!r}")
    return segments


@dataclass(frozen=True)
class FieldFilter:
    """A declared field filter: a path plus its (operator, runtime key) pairs."""

    path: Tuple[str, ...]
    operators: Tuple[Tuple[OperatorName, str], ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        """Dotted representation of the path, used in logs and errors."""
        return ".".join(self.path)


class QueryDefinition:
    """
    DSL object handed to the configure callback of ``query``.

    Example:
        def configure(q):
            q.filter_field("posted")
            q.filter_field("title", contains="title")
            q.filter_field("posted_date",
                           greater_than_or_equal_to="from_posted_date",
                           less_than="to_posted_date")
            q.filter_field(["comments", "author", "name"],
                           equal_to="comment_author_name")
            q.order_by("posted_date DESC, posts.created_at DESC")
    """

    def __init__(self) -> None:
        self._fields: List[FieldFilter] = []
        self._ordering: Tuple[Any, ...] = ()

    def filter_field(
            self,
            field_path: FieldPathLike,
            operators: Optional[Mapping[OperatorName, str]] = None,
            **operator_keys: str,
    ) -> "QueryDefinition":
        """
        Declare a filter on a field.

        Operators can be given as a mapping, as keyword arguments, or both.
        Without any operator the field gets a presence check keyed by the
        field's own name. Operator names are not validated here.

        Args:
            field_path: Field name, dotted path or sequence of names
            operators: Mapping of operator to runtime key
            **operator_keys: Operator name to runtime key

        Returns:
            The definition, for chaining
        """
        path = normalize_field_path(field_path)

        pairs: Dict[OperatorName, str] = {}
        if operators:
            pairs.update(operators)
        pairs.update(operator_keys)
        if not pairs:
            pairs[Operator.PRESENT] = path[-1]

        self._fields.append(
            FieldFilter(
                path=path,
                operators=tuple((op, str(key)) for op, key in pairs.items()),
            )
        )
        return self

    def order_by(self, *clauses: Any) -> "QueryDefinition":
        """
        Record the ordering clause for the query.

        Strings are passed through verbatim as raw SQL; column expressions are
        used as-is. A later call replaces an earlier one.

        Args:
            *clauses: Raw SQL strings or SQLAlchemy order expressions

        Returns:
            The definition, for chaining
        """
        self._ordering = tuple(
            text(clause) if isinstance(clause, str) else clause
            for clause in clauses
        )
        return self

    @property
    def fields(self) -> Tuple[FieldFilter, ...]:
        return tuple(self._fields)

    @property
    def ordering(self) -> Tuple[Any, ...]:
        return self._ordering

    def runtime_keys(self) -> List[str]:
        """All runtime keys declared, in declaration order."""
        return [key for field_filter in self._fields for _, key in field_filter.operators]

    def __repr__(self) -> str:
        return f"QueryDefinition(fields={len(self._fields)}, ordered={bool(self._ordering)})"
