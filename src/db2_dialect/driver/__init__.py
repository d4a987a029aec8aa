"""Native driver binding, session pool and result normalization."""
from db2_dialect.driver.native import NativeConnection, NativeResult, check_dependencies, load_driver
from db2_dialect.driver.normalizer import driver_error_from_native, row_to_mapping
from db2_dialect.driver.pool import ConnectionPool

__all__ = [
    "ConnectionPool",
    "NativeConnection",
    "NativeResult",
    "check_dependencies",
    "load_driver",
    "driver_error_from_native",
    "row_to_mapping",
]
