from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchParamType(str, Enum):
    """PostgreSQL types a search parameter can be bound as."""

    BOOL = "bool"
    BOOL_ARRAY = "bool[]"
    INT2 = "int2"
    INT2_ARRAY = "int2[]"
    INT4 = "int4"
    INT4_ARRAY = "int4[]"
    INT8 = "int8"
    INT8_ARRAY = "int8[]"
    FLOAT4 = "float4"
    FLOAT4_ARRAY = "float4[]"
    FLOAT8 = "float8"
    FLOAT8_ARRAY = "float8[]"
    TEXT = "text"
    TEXT_ARRAY = "text[]"
    VARCHAR = "varchar"
    VARCHAR_ARRAY = "varchar[]"
    JSON = "json"
    JSON_ARRAY = "json[]"
    JSONB = "jsonb"
    JSONB_ARRAY = "jsonb[]"
    TIMESTAMPTZ = "timestamptz"
    TIMESTAMPTZ_ARRAY = "timestamptz[]"
    UUID = "uuid"
    UUID_ARRAY = "uuid[]"

    @property
    def is_array(self) -> bool:
        return self.value.endswith("[]")

    @property
    def element_type(self) -> "SearchParamType":
        """Scalar counterpart of an array type; scalars return themselves."""
        if self.is_array:
            return SearchParamType(self.value[:-2])
        return self

    @classmethod
    def parse(cls, name: str) -> "SearchParamType":
        """Resolve a configuration spelling (``integer``, ``text[]``...) to a member."""
        normalized = " ".join(name.strip().lower().split())
        suffix = ""
        if normalized.endswith("[]"):
            normalized, suffix = normalized[:-2].rstrip(), "[]"
        return cls(_ALIASES.get(normalized, normalized) + suffix)

    @classmethod
    def from_db_type(cls, type_name: str) -> "SearchParamType | None":
        """Map a result column's type name to a member, or None when unsupported."""
        try:
            return cls(type_name)
        except ValueError:
            return None


_ALIASES = {
    "boolean": "bool",
    "smallint": "int2",
    "integer": "int4",
    "int": "int4",
    "bigint": "int8",
    "real": "float4",
    "double precision": "float8",
    "character varying": "varchar",
    "timestamp with time zone": "timestamptz",
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SearchParam(_Frozen):
    name: str
    type: SearchParamType | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return SearchParamType.parse(value)
        return value


class Search(_Frozen):
    query: str
    params: list[SearchParam] = Field(default_factory=list)


class JsonPathColumn(_Frozen):
    """A JSON column plus the JSONPath expression evaluated against it."""

    json_path: tuple[str, str]

    @property
    def column(self) -> str:
        return self.json_path[0]

    @property
    def path(self) -> str:
        return self.json_path[1]


ColumnExpression = str | JsonPathColumn


class LinkCondition(_Frozen):
    eq: tuple[ColumnExpression, str]


class Link(_Frozen):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    kind: str
    search: str
    search_params: list[ColumnExpression]
    condition: LinkCondition | None = Field(default=None, alias="if")


class Resource(_Frozen):
    name: str
    search: dict[str, Search] = Field(default_factory=dict)
    links: dict[str, Link] = Field(default_factory=dict)
