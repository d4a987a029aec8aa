from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel

DIALECT_NAME = "DB2"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Db2Credentials(_CamelModel):
    """Connection details for one Db2 database.

    Either `connect_string` is given verbatim, or it is built from the
    discrete fields.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    server: Optional[str] = None
    port: int = 50000
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    connect_string: Optional[str] = None

    @property
    def connection_id(self) -> str:
        if self.id:
            return self.id
        return "|".join([self.name or "", DIALECT_NAME, self.server or "", self.database or ""])

    def build_connection_string(self) -> str:
        if self.connect_string:
            return self.connect_string
        password = self.password.get_secret_value() if self.password else ""
        return (
            f"database={self.database or ''};"
            f"hostname={self.server or ''};"
            f"port={self.port};"
            "protocol=TCPIP;"
            f"uid={self.username or ''};"
            f"pwd={password}"
        )


class QueryResult(_CamelModel):
    """Outcome of one executed statement."""

    conn_id: str
    cols: List[str] = Field(default_factory=list)
    messages: List[str] = Field(default_factory=list)
    query: str
    results: List[Dict[str, Any]] = Field(default_factory=list)


class CatalogTable(_CamelModel):
    name: str
    is_view: bool = False
    number_of_columns: Optional[int] = None
    table_catalog: Optional[str] = None
    table_database: Optional[str] = None
    table_schema: Optional[str] = None
    tree: Optional[str] = None


class CatalogColumn(_CamelModel):
    column_name: str
    default_value: Optional[Any] = None
    is_nullable: Optional[bool] = Field(
        default=None, description="None when the catalog does not report nullability."
    )
    size: Optional[int] = None
    table_catalog: Optional[str] = None
    table_database: Optional[str] = None
    table_name: Optional[str] = None
    table_schema: Optional[str] = None
    type: Optional[str] = None
    is_pk: bool = False
    is_fk: bool = False
    tree: Optional[str] = None


class CatalogFunction(_CamelModel):
    name: str
    schema_name: Optional[str] = Field(default=None, alias="schema")
    database: Optional[str] = None
    signature: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    result_type: Optional[str] = None
    tree: Optional[str] = None
