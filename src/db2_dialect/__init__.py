"""Db2 dialect execution engine."""
from db2_dialect.common.errors import (
    DialectConnectionError,
    DialectError,
    DriverError,
    DriverErrorInfo,
    ErrorCode,
    InvalidTableIdentifierError,
    MetadataShapeError,
    MissingDependencyError,
    StatementSplitError,
)
from db2_dialect.dialect import Db2Dialect
from db2_dialect.models import (
    CatalogColumn,
    CatalogFunction,
    CatalogTable,
    Db2Credentials,
    QueryResult,
)

__all__ = [
    "Db2Dialect",
    "Db2Credentials",
    "QueryResult",
    "CatalogTable",
    "CatalogColumn",
    "CatalogFunction",
    "DialectError",
    "DialectConnectionError",
    "DriverError",
    "DriverErrorInfo",
    "ErrorCode",
    "InvalidTableIdentifierError",
    "MetadataShapeError",
    "MissingDependencyError",
    "StatementSplitError",
]
