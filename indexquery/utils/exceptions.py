from __future__ import annotations

from typing import Any, Optional


class IndexQueryError(Exception):
    """Base exception for all indexquery errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information
        """
        self.message = message
        details = dict(kwargs.pop("details", None) or {})
        details.update(kwargs)
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class UnknownOperator(IndexQueryError, ValueError):
    """Exception raised when a field filter uses an operator with no handler.

    Raised while the filters are applied, not when they are declared, and only
    for operators whose runtime key is present in the filter values.

    Example:
        query(select(Post), {"with": {"view_count": 10}},
              lambda q: q.filter_field("view_count", unknown_operator="view_count"))
    """

    def __init__(
            self, message: str, *, operator: Optional[str] = None,
            field: Optional[str] = None, **kwargs: Any
    ) -> None:
        """Initialize an UnknownOperator error.

        Args:
            message: A descriptive error message.
            operator: The operator name that could not be resolved.
            field: The field path the operator was declared on.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if operator is not None:
            details["operator"] = operator
        if field is not None:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)
        self.operator = operator
        self.field = field


class InvalidFieldPathError(IndexQueryError, ValueError):
    """Exception raised when a field path does not resolve on the model."""

    def __init__(
            self, message: str, *, field: Optional[str] = None,
            segment: Optional[str] = None, model: Optional[str] = None,
            **kwargs: Any
    ) -> None:
        """Initialize an InvalidFieldPathError.

        Args:
            message: A descriptive error message.
            field: The full field path being resolved.
            segment: The path segment that failed.
            model: Name of the model the segment was looked up on.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if field is not None:
            details["field"] = field
        if segment is not None:
            details["segment"] = segment
        if model is not None:
            details["model"] = model
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(IndexQueryError):
    """Exception raised for configuration-related errors."""

    def __init__(
            self, message: str, *, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: A descriptive error message.
            config_key: The configuration key that caused the error.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)
