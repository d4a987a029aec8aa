from .mapper import map_columns, map_functions, map_tables
from . import queries

__all__ = ["map_columns", "map_functions", "map_tables", "queries"]
