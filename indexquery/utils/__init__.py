"""Utility functions and classes for indexquery."""

from indexquery.utils.exceptions import (
    ConfigurationError,
    IndexQueryError,
    InvalidFieldPathError,
    UnknownOperator,
)
