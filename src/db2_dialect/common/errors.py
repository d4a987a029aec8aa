from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Standardized error codes for the dialect."""
    CONNECTION_FAILED = "CONNECTION_FAILED"
    POOL_EXHAUSTED = "POOL_EXHAUSTED"
    STATEMENT_FAILED = "STATEMENT_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    DESCRIBE_FAILED = "DESCRIBE_FAILED"
    INVALID_QUERY_TEXT = "INVALID_QUERY_TEXT"
    INVALID_TABLE_IDENTIFIER = "INVALID_TABLE_IDENTIFIER"
    METADATA_SHAPE = "METADATA_SHAPE"
    MISSING_DEPENDENCY = "MISSING_DEPENDENCY"


class DriverErrorInfo(BaseModel):
    """Normalized error details reported by the native driver.

    Attributes:
        error (Optional[str]): Short error label reported by the driver, if any.
        code (Optional[int]): Backend SQLCODE.
        message (str): Human-readable driver message.
        state (Optional[str]): Five character SQLSTATE.
        raw (Optional[Any]): The native object the fields were picked from.
    """
    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    error: Optional[str] = None
    code: Optional[int] = None
    message: str = ""
    state: Optional[str] = None
    raw: Optional[Any] = Field(default=None, exclude=True, repr=False)


class DialectError(Exception):
    """Base class for every error raised by the dialect."""

    error_code: ErrorCode = ErrorCode.STATEMENT_FAILED

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class DriverError(DialectError):
    """A statement, fetch or describe call failed inside the native driver."""

    def __init__(self, info: DriverErrorInfo, error_code: Optional[ErrorCode] = None):
        super().__init__(info.message or "Unknown driver error", error_code)
        self.info = info

    @property
    def code(self) -> Optional[int]:
        return self.info.code

    @property
    def state(self) -> Optional[str]:
        return self.info.state

    def __str__(self) -> str:
        parts = [self.message]
        if self.info.state and "SQLSTATE=" not in self.message:
            parts.append(f"SQLSTATE={self.info.state}")
        if self.info.code is not None and "SQLCODE=" not in self.message:
            parts.append(f"SQLCODE={self.info.code}")
        return " ".join(parts)


class DialectConnectionError(DialectError):
    """Opening a session through the pool, or closing the pool, failed."""

    error_code = ErrorCode.CONNECTION_FAILED

    def __init__(
        self,
        message: str,
        info: Optional[DriverErrorInfo] = None,
        error_code: Optional[ErrorCode] = None,
    ):
        super().__init__(message, error_code)
        self.info = info


class MetadataShapeError(DialectError):
    """A catalog query returned rows the metadata mapper cannot read."""

    error_code = ErrorCode.METADATA_SHAPE


class InvalidTableIdentifierError(DialectError, ValueError):
    error_code = ErrorCode.INVALID_TABLE_IDENTIFIER


class StatementSplitError(DialectError, ValueError):
    error_code = ErrorCode.INVALID_QUERY_TEXT


class MissingDependencyError(DialectError):
    """The native driver package is not installed."""

    error_code = ErrorCode.MISSING_DEPENDENCY

    def __init__(self, package: str, version: str):
        super().__init__(
            f"Package '{package}' is required to connect to Db2. "
            f"Install it with: pip install \"{package}>={version}\""
        )
        self.package = package
        self.version = version
