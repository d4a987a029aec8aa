"""Translation of native ibm_db shapes into the dialect's result and error models."""
import re
from collections.abc import Mapping
from typing import Any, Dict, Optional

from db2_dialect.common.errors import DriverErrorInfo

_SQLSTATE_RE = re.compile(r"SQLSTATE=(\w{5})")
_SQLCODE_RE = re.compile(r"SQLCODE=(-?\d+)")
_NATIVE_FIELDS = ("error", "sqlcode", "message", "state")


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _pick(native: Any, field: str) -> Any:
    if isinstance(native, Mapping):
        return native.get(field)
    return getattr(native, field, None)


def driver_error_from_native(native: Any) -> DriverErrorInfo:
    """Builds a DriverErrorInfo from whatever the driver reported.

    ibm_db signals failures two ways: by raising a plain Exception whose text
    embeds ``SQLSTATE=`` and ``SQLCODE=``, or by returning a falsy handle and
    leaving the details on the statement. Results carrying the details are
    read field by field; exceptions are parsed from their message.

    Args:
        native (Any): A raised exception, a failed NativeResult or a dict.

    Returns:
        DriverErrorInfo: error, code, message and state, with the native
        object kept in ``raw``.
    """
    if isinstance(native, BaseException):
        message = str(native).strip()
        state = _SQLSTATE_RE.search(message)
        code = _SQLCODE_RE.search(message)
        return DriverErrorInfo(
            error=type(native).__name__,
            code=_to_int(code.group(1)) if code else None,
            message=message,
            state=state.group(1) if state else None,
            raw=native,
        )

    error, sqlcode, message, state = (_pick(native, field) for field in _NATIVE_FIELDS)
    message = str(message) if message else ""
    if sqlcode is None and message:
        found = _SQLCODE_RE.search(message)
        sqlcode = found.group(1) if found else None
    if not state and message:
        found = _SQLSTATE_RE.search(message)
        state = found.group(1) if found else None
    return DriverErrorInfo(
        error=str(error) if error else None,
        code=_to_int(sqlcode),
        message=message,
        state=state or None,
        raw=native,
    )


def row_to_mapping(row: Any) -> Dict[str, Any]:
    """Converts a fetched row into an ordered column-name to value mapping."""
    if isinstance(row, Mapping):
        return dict(row)
    if hasattr(row, "_asdict"):
        return dict(row._asdict())
    raise TypeError(f"Cannot convert row of type {type(row).__name__} to a mapping")
