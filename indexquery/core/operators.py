from __future__ import annotations

"""
Operator vocabulary for field filters.

Maps each supported operator to the SQLAlchemy expression it produces. The set
is closed: anything not listed in ``Operator`` is rejected with
``UnknownOperator`` when the filters are applied.
"""

import enum
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.sql.elements import ColumnElement

from indexquery.utils.exceptions import UnknownOperator


class Operator(str, enum.Enum):
    """Comparison operators accepted by ``QueryDefinition.filter_field``."""

    EQUAL_TO = "equal_to"
    NOT_EQUAL_TO = "not_equal_to"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL_TO = "greater_than_or_equal_to"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL_TO = "less_than_or_equal_to"
    PRESENT = "present"

    @classmethod
    def parse(cls, name: Union[str, "Operator"], field: Optional[str] = None) -> "Operator":
        """
        Resolve an operator name to its enum member.

        Args:
            name: Operator member or its string value
            field: Field path the operator belongs to, used in the error

        Returns:
            The matching Operator

        Raises:
            UnknownOperator: If the name is not a supported operator
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name))
        except ValueError:
            raise UnknownOperator(
                f"Unknown operator '{name}' for field '{field}'",
                operator=str(name),
                field=field,
            ) from None


def _contains(column: Any, value: Any, case_insensitive: bool) -> ColumnElement:
    if case_insensitive:
        return column.icontains(value, autoescape=True)
    return column.contains(value, autoescape=True)


def _present(column: Any, value: Any, case_insensitive: bool) -> ColumnElement:
    if value:
        return column.is_not(None)
    return column.is_(None)


OperatorHandler = Callable[[Any, Any, bool], ColumnElement]

OPERATOR_HANDLERS: Dict[Operator, OperatorHandler] = {
    Operator.EQUAL_TO: lambda column, value, _: column == value,
    Operator.NOT_EQUAL_TO: lambda column, value, _: column != value,
    Operator.CONTAINS: _contains,
    Operator.GREATER_THAN: lambda column, value, _: column > value,
    Operator.GREATER_THAN_OR_EQUAL_TO: lambda column, value, _: column >= value,
    Operator.LESS_THAN: lambda column, value, _: column < value,
    Operator.LESS_THAN_OR_EQUAL_TO: lambda column, value, _: column <= value,
    Operator.PRESENT: _present,
}


def build_predicate(
        operator: Operator, column: Any, value: Any, case_insensitive: bool = True
) -> ColumnElement:
    """
    Build the filter expression for ``operator`` applied to ``column``.

    Args:
        operator: The operator to apply
        column: Column attribute the predicate is built on
        value: Value supplied by the caller for this operator
        case_insensitive: Whether ``contains`` ignores case

    Returns:
        SQLAlchemy boolean expression
    """
    return OPERATOR_HANDLERS[operator](column, value, case_insensitive)
