"""Simple DSL for building filtered, ordered SQLAlchemy queries.

Makes it easy to fetch records for index pages: declare once which fields can
be filtered and how, then apply the filter values taken from a request.
"""

from indexquery.__version__ import __version__
from indexquery.core.config import IndexQueryConfig, QueryOptions, set_default_config
from indexquery.core.definition import QueryDefinition
from indexquery.core.logging_manager import configure_logging, get_logger
from indexquery.core.operators import Operator
from indexquery.core.query import query, query_children
from indexquery.utils.exceptions import (
    ConfigurationError,
    IndexQueryError,
    InvalidFieldPathError,
    UnknownOperator,
)

__all__ = [
    "__version__",
    "ConfigurationError",
    "IndexQueryConfig",
    "IndexQueryError",
    "InvalidFieldPathError",
    "Operator",
    "QueryDefinition",
    "QueryOptions",
    "UnknownOperator",
    "configure_logging",
    "get_logger",
    "query",
    "query_children",
    "set_default_config",
]
