"""Reshaping of raw catalog rows into CatalogTable/Column/Function entities."""
import functools
import re
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from db2_dialect.common.errors import MetadataShapeError
from db2_dialect.models import CatalogColumn, CatalogFunction, CatalogTable

_ARGS_SEPARATOR = re.compile(r", *")


def _parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _flatten(rows: Iterable[Any]) -> List[Mapping]:
    flat: List[Any] = []
    for row in rows:
        if isinstance(row, list):
            flat.extend(row)
        else:
            flat.append(row)
    for row in flat:
        if not isinstance(row, Mapping):
            raise MetadataShapeError(f"Expected a catalog row mapping, got {type(row).__name__}")
    return flat


def _shape_checked(mapper):
    @functools.wraps(mapper)
    def wrapper(rows):
        try:
            return mapper(rows)
        except ValidationError as exc:
            raise MetadataShapeError(f"{mapper.__name__}: unexpected catalog row: {exc}") from exc
    return wrapper


def _nullable(flag: Any) -> Optional[bool]:
    if not flag:
        return None
    return str(flag).lower() == "yes"


@_shape_checked
def map_tables(rows: Iterable[Any]) -> List[CatalogTable]:
    return [
        CatalogTable(
            name=row.get("TABLENAME"),
            is_view=bool(row.get("ISVIEW")),
            number_of_columns=_parse_int(row.get("NUMBEROFCOLUMNS")),
            table_catalog=row.get("TABLECATALOG"),
            table_database=row.get("DBNAME"),
            table_schema=row.get("TABLESCHEMA"),
            tree=row.get("TREE"),
        )
        for row in _flatten(rows)
    ]


@_shape_checked
def map_columns(rows: Iterable[Any]) -> List[CatalogColumn]:
    """Maps column catalog rows.

    ``ISNULLABLE`` is compared case-insensitively to ``"yes"``; a missing flag
    maps to ``None`` rather than ``False``. ``KEYTYPE`` ``'P'`` marks a primary
    key and ``'R'`` a foreign key.
    """
    return [
        CatalogColumn(
            column_name=row.get("COLUMNNAME"),
            default_value=row.get("DEFAULTVALUE"),
            is_nullable=_nullable(row.get("ISNULLABLE")),
            size=_parse_int(row.get("Size")),
            table_catalog=row.get("TABLECATALOG"),
            table_database=row.get("DBNAME"),
            table_name=row.get("TABLENAME"),
            table_schema=row.get("TABLESCHEMA"),
            type=row.get("Type"),
            is_pk=row.get("KEYTYPE") == "P",
            is_fk=row.get("KEYTYPE") == "R",
            tree=row.get("TREE"),
        )
        for row in _flatten(rows)
    ]


@_shape_checked
def map_functions(rows: Iterable[Any]) -> List[CatalogFunction]:
    return [
        CatalogFunction(
            name=row.get("NAME"),
            schema_name=row.get("DBSCHEMA"),
            database=row.get("DBNAME"),
            signature=row.get("SIGNATURE"),
            args=_ARGS_SEPARATOR.split(row["ARGS"]) if row.get("ARGS") else [],
            result_type=row.get("RESULTTYPE"),
            tree=row.get("TREE"),
        )
        for row in _flatten(rows)
    ]
