"""Typed views of the Superset REST payloads."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Database(BaseModel):
    """A database registered in Superset. Unknown fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    id: int
    database_name: str = ""
    sqlalchemy_uri: str = ""
    expose_in_sqllab: bool = False
    allow_run_async: bool = False
    allow_dml: bool = False
    allow_file_upload: bool = False
    allow_ctas: bool = False
    allow_cvas: bool = False
    extra: Any = None


class Table(BaseModel):
    """A table or view inside one schema of a database."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    schema_name: str = Field(alias="schema")
    catalog: str = ""
    description: str = ""
    type: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


class Column(BaseModel):
    """A table column as reported by the table metadata endpoint."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    type: Optional[str] = None
    nullable: Optional[bool] = None
    default: Any = None
    comment: Optional[str] = None
    long_type: Optional[str] = Field(default=None, alias="longType")
    keys: List[Any] = Field(default_factory=list)


class Index(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    column_names: List[str] = Field(default_factory=list)
    type: Optional[str] = None
    unique: bool = False


class PrimaryKey(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    constrained_columns: Optional[List[str]] = None


class TableMetadata(BaseModel):
    """Columns, keys and the canonical SELECT template of one table."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = ""
    columns: List[Column] = Field(default_factory=list)
    comment: Optional[str] = None
    foreign_keys: List[Any] = Field(default_factory=list, alias="foreignKeys")
    indexes: List[Index] = Field(default_factory=list)
    primary_key: PrimaryKey = Field(default_factory=PrimaryKey, alias="primaryKey")
    select_star: str = Field(default="", alias="selectStar")


class QueryRequest(BaseModel):
    """Body of a SQL Lab execute call.

    Serialize with ``model_dump(by_alias=True, exclude_none=True)`` to get the
    wire field names.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    database_id: int
    sql: str
    catalog: Optional[str] = None
    client_id: Optional[str] = None
    ctas_method: Optional[str] = None
    expand_data: Optional[bool] = None
    json_format: Optional[bool] = Field(default=None, alias="json")
    query_limit: Optional[int] = Field(default=None, alias="queryLimit")
    run_async: Optional[bool] = Field(default=None, alias="runAsync")
    schema_name: Optional[str] = Field(default=None, alias="schema")
    select_as_cta: Optional[bool] = None
    sql_editor_id: Optional[str] = None
    tab: Optional[str] = None
    template_params: Optional[str] = Field(default=None, alias="templateParams")
    tmp_table_name: Optional[str] = None


class QueryResult(BaseModel):
    """Outcome of an execute or results call."""

    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    data: Optional[List[Any]] = None
    columns: Optional[List[Any]] = None
    selected_columns: Optional[List[Any]] = None
    expanded_columns: Optional[List[Any]] = None
    query_id: Optional[int] = None
    query: Optional[Dict[str, Any]] = None
    error: Any = None
