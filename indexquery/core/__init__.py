"""Core package containing the query definition, builder and entry points."""

from indexquery.core.builder import JoinTracker, QueryBuilder
from indexquery.core.children import children_of
from indexquery.core.config import (
    IndexQueryConfig,
    QueryOptions,
    get_default_config,
    set_default_config,
)
from indexquery.core.definition import FieldFilter, QueryDefinition
from indexquery.core.logging_manager import LoggingManager, configure_logging, get_logger
from indexquery.core.operators import Operator
from indexquery.core.query import query, query_children
