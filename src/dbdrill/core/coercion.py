"""Type-directed conversions between operator input, JSON nodes, bound
parameters and display strings.

Each direction dispatches through a table holding one entry per
``SearchParamType`` member; ``tests/unit/coercion_test.py`` keeps the tables
exhaustive.
"""

import functools
import json
import math
import re
import struct
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as _parse_json_path
from jsonpath_ng.jsonpath import JSONPath

from dbdrill.core.ports.database import Column, Row
from dbdrill.errors import CardinalityError, CoercionError
from dbdrill.models import SearchParamType as T

NULL_DISPLAY = "<NULL>"

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_RANGES = {
    T.INT2: (-(2**15), 2**15 - 1),
    T.INT4: (-(2**31), 2**31 - 1),
    T.INT8: (-(2**63), 2**63 - 1),
}


# ---------------------------------------------------------------------------
# JSONPath
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=256)
def compile_json_path(path: str) -> JSONPath:
    """Parse a JSONPath expression, raising ``CoercionError`` when it's invalid."""
    try:
        return _parse_json_path(path)
    except JSONPathError as exc:
        raise CoercionError(f"invalid JSONPath expression {path!r}: {exc}") from exc


def evaluate_json_path(path: str, document: Any) -> list[Any]:
    """Return the values of every node ``path`` selects in ``document``.

    Filters comparing mismatched types (``null > 1``) raise ``CoercionError``.
    """
    expression = compile_json_path(path)
    try:
        matches = expression.find(document)
    except (TypeError, ValueError, KeyError) as exc:
        raise CoercionError(f"error evaluating JSONPath expression {path!r}: {exc}") from exc
    return [match.value for match in matches]


# ---------------------------------------------------------------------------
# Scalar parsers (text -> native value)
# ---------------------------------------------------------------------------


def _parse_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError("expected 'true' or 'false'")


def _int_parser(param_type: T) -> Callable[[str], int]:
    low, high = _INT_RANGES[param_type]

    def parse(text: str) -> int:
        if not _INT_RE.fullmatch(text):
            raise ValueError("invalid digit found in string")
        value = int(text)
        if not low <= value <= high:
            raise ValueError(f"number doesn't fit in {param_type.value}")
        return value

    return parse


def _parse_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError("invalid float literal")
    return float(text)


def _parse_json(text: str) -> str:
    json.loads(text)
    return text


def _parse_timestamptz(text: str) -> datetime:
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        raise ValueError("timestamp has no UTC offset")
    return value


def _parse_text(text: str) -> str:
    return text


_SCALAR_PARSERS: dict[T, Callable[[str], Any]] = {
    T.BOOL: _parse_bool,
    T.INT2: _int_parser(T.INT2),
    T.INT4: _int_parser(T.INT4),
    T.INT8: _int_parser(T.INT8),
    T.FLOAT4: _parse_float,
    T.FLOAT8: _parse_float,
    T.TEXT: _parse_text,
    T.VARCHAR: _parse_text,
    T.JSON: _parse_json,
    T.JSONB: _parse_json,
    T.TIMESTAMPTZ: _parse_timestamptz,
    T.UUID: uuid.UUID,
}


def _scalar_from_text(param_type: T) -> Callable[[str], Any]:
    parse = _SCALAR_PARSERS[param_type]

    def convert(text: str) -> Any:
        try:
            return parse(text)
        except ValueError as exc:
            raise CoercionError(f"error parsing value as {param_type.value}: {text!r} ({exc})") from exc

    return convert


def _array_from_text(param_type: T) -> Callable[[str], list[Any]]:
    element_type = param_type.element_type
    parse = _SCALAR_PARSERS[element_type]

    def convert(text: str) -> list[Any]:
        if text == "":
            return []
        items: list[Any] = []
        for part in text.split(","):
            try:
                items.append(parse(part))
            except ValueError as exc:
                raise CoercionError(
                    f"error parsing value as {param_type.value}: element {part!r} is not a valid "
                    f"{element_type.value} ({exc})"
                ) from exc
        return items

    return convert


_FROM_TEXT: dict[T, Callable[[str], Any]] = {
    t: _array_from_text(t) if t.is_array else _scalar_from_text(t) for t in T
}


def from_text(text: str, param_type: T | None) -> Any:
    """Convert operator input to a value bindable as ``param_type``.

    ``None`` means the parameter is untyped and the text is bound unchanged.
    """
    if param_type is None:
        return text
    return _FROM_TEXT[param_type](text)


# ---------------------------------------------------------------------------
# JSON narrowing (JSON node -> native value)
# ---------------------------------------------------------------------------


def _render_node(node: Any) -> str:
    return json.dumps(node, ensure_ascii=False)


def _narrow_bool(node: Any) -> bool:
    if isinstance(node, bool):
        return node
    raise ValueError("is not a boolean")


def _int_narrower(param_type: T) -> Callable[[Any], int]:
    low, high = _INT_RANGES[param_type]

    def narrow(node: Any) -> int:
        if isinstance(node, bool) or not isinstance(node, int):
            raise ValueError("is not an integer")
        if not low <= node <= high:
            raise ValueError(f"overflows {param_type.value}")
        return node

    return narrow


def _narrow_float(node: Any) -> float:
    if isinstance(node, bool) or not isinstance(node, (int, float)):
        raise ValueError("is not a number")
    return float(node)


def _narrow_str(node: Any) -> str:
    if isinstance(node, str):
        return node
    raise ValueError("is not a string")


def _narrow_json(node: Any) -> str:
    return json.dumps(node)


def _narrow_timestamptz(node: Any) -> datetime:
    try:
        return _parse_timestamptz(_narrow_str(node))
    except ValueError as exc:
        if isinstance(node, str):
            raise ValueError("is not a valid timestamp") from exc
        raise


def _narrow_uuid(node: Any) -> uuid.UUID:
    try:
        return uuid.UUID(_narrow_str(node))
    except ValueError as exc:
        if isinstance(node, str):
            raise ValueError("is not a valid uuid") from exc
        raise


_NARROWERS: dict[T, Callable[[Any], Any]] = {
    T.BOOL: _narrow_bool,
    T.INT2: _int_narrower(T.INT2),
    T.INT4: _int_narrower(T.INT4),
    T.INT8: _int_narrower(T.INT8),
    T.FLOAT4: _narrow_float,
    T.FLOAT8: _narrow_float,
    T.TEXT: _narrow_str,
    T.VARCHAR: _narrow_str,
    T.JSON: _narrow_json,
    T.JSONB: _narrow_json,
    T.TIMESTAMPTZ: _narrow_timestamptz,
    T.UUID: _narrow_uuid,
}


def extract_single_value(values: Sequence[Any]) -> Any:
    """Return the only node of ``values``; any other count is a cardinality error."""
    if len(values) != 1:
        raise CardinalityError(expected=1, actual=len(values))
    return values[0]


def _narrow(narrow: Callable[[Any], Any], node: Any, what: str) -> Any:
    try:
        return narrow(node)
    except ValueError as exc:
        raise CoercionError(f"{what} {exc}: {_render_node(node)}") from exc


def _scalar_from_json(param_type: T) -> Callable[[Sequence[Any]], Any]:
    narrow = _NARROWERS[param_type]

    def convert(values: Sequence[Any]) -> Any:
        return _narrow(narrow, extract_single_value(values), "value")

    return convert


def _array_from_json(param_type: T) -> Callable[[Sequence[Any]], list[Any]]:
    narrow = _NARROWERS[param_type.element_type]

    def convert(values: Sequence[Any]) -> list[Any]:
        # a path selecting one JSON array ("$.tags") feeds the array's items
        if len(values) == 1 and isinstance(values[0], list):
            values = values[0]
        return [_narrow(narrow, node, "array element") for node in values]

    return convert


_FROM_JSON: dict[T, Callable[[Sequence[Any]], Any]] = {
    t: _array_from_json(t) if t.is_array else _scalar_from_json(t) for t in T
}


def from_json(values: Sequence[Any], param_type: T | None) -> Any:
    """Convert the nodes selected by a JSONPath into a value bindable as ``param_type``.

    Scalar targets need exactly one node; array targets take any number.
    Untyped parameters are treated as ``text``.
    """
    return _FROM_JSON[param_type or T.TEXT](values)


# ---------------------------------------------------------------------------
# Native cell value -> bindable parameter
# ---------------------------------------------------------------------------


def _same(value: Any) -> Any:
    return value


def _json_text(value: Any) -> str:
    return json.dumps(value)


_SCALAR_BINDERS: dict[T, Callable[[Any], Any]] = {
    T.BOOL: _same,
    T.INT2: _same,
    T.INT4: _same,
    T.INT8: _same,
    T.FLOAT4: _same,
    T.FLOAT8: _same,
    T.TEXT: _same,
    T.VARCHAR: _same,
    T.JSON: _json_text,
    T.JSONB: _json_text,
    T.TIMESTAMPTZ: _same,
    T.UUID: _same,
}


def _array_binder(param_type: T) -> Callable[[Any], list[Any]]:
    bind = _SCALAR_BINDERS[param_type.element_type]

    def convert(value: Any) -> list[Any]:
        return [None if item is None else bind(item) for item in value]

    return convert


_TO_BINDABLE: dict[T, Callable[[Any], Any]] = {
    t: _array_binder(t) if t.is_array else _SCALAR_BINDERS[t] for t in T
}


def to_bindable(value: Any, column_type: T) -> Any:
    """Turn a value read from a ``column_type`` cell back into a query argument.

    JSON cells come back decoded, but the driver binds JSON parameters as text.
    """
    if value is None:
        return None
    return _TO_BINDABLE[column_type](value)


# ---------------------------------------------------------------------------
# Display (native value -> string)
# ---------------------------------------------------------------------------


def _display_bool(value: Any) -> str:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, got {type(value).__name__}")
    return "true" if value else "false"


def _display_int(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    return str(value)


def _special_float(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return None


def _display_float8(value: Any) -> str:
    value = float(_narrow_float_value(value))
    return _special_float(value) or repr(value)


def _display_float4(value: Any) -> str:
    value = float(_narrow_float_value(value))
    special = _special_float(value)
    if special is not None:
        return special
    # shortest decimal that round-trips through single precision
    for digits in range(1, 10):
        text = f"{value:.{digits}g}"
        if struct.unpack("f", struct.pack("f", float(text)))[0] == value:
            return text
    return repr(value)


def _narrow_float_value(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return value


def _display_text(value: Any) -> str:
    return str(value)


def _display_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _display_timestamptz(value: Any) -> str:
    if not isinstance(value, datetime):
        raise TypeError(f"expected a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return text + "Z"


def _display_uuid(value: Any) -> str:
    return str(uuid.UUID(str(value)))


_SCALAR_DISPLAYS: dict[T, Callable[[Any], str]] = {
    T.BOOL: _display_bool,
    T.INT2: _display_int,
    T.INT4: _display_int,
    T.INT8: _display_int,
    T.FLOAT4: _display_float4,
    T.FLOAT8: _display_float8,
    T.TEXT: _display_text,
    T.VARCHAR: _display_text,
    T.JSON: _display_json,
    T.JSONB: _display_json,
    T.TIMESTAMPTZ: _display_timestamptz,
    T.UUID: _display_uuid,
}

_QUOTED_ELEMENTS = {T.TEXT, T.VARCHAR}


def _array_display(param_type: T) -> Callable[[Any], str]:
    element_type = param_type.element_type
    display = _SCALAR_DISPLAYS[element_type]

    def render(value: Any) -> str:
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"expected an array, got {type(value).__name__}")
        items = []
        for item in value:
            if item is None:
                items.append(NULL_DISPLAY)
            elif element_type in _QUOTED_ELEMENTS:
                items.append(json.dumps(str(item), ensure_ascii=False))
            else:
                items.append(display(item))
        return "[" + ", ".join(items) + "]"

    return render


_DISPLAYS: dict[T, Callable[[Any], str]] = {t: _array_display(t) if t.is_array else _SCALAR_DISPLAYS[t] for t in T}


def decode(type_name: str, value: Any) -> str:
    """Render a database cell for display.

    Never raises: an unsupported type or an unexpected value renders the
    error message as the cell's content.
    """
    if value is None:
        return NULL_DISPLAY
    param_type = T.from_db_type(type_name)
    if param_type is None:
        return f"unsupported type: {type_name}"
    try:
        return _DISPLAYS[param_type](value)
    except (TypeError, ValueError, OverflowError) as exc:
        return f"error decoding {type_name} value: {exc}"


def decode_cell(column: Column, value: Any) -> str:
    return decode(column.type_name, value)


def decode_row(row: Row) -> list[str]:
    return [decode_cell(col, val) for col, val in zip(row.columns, row.values, strict=True)]
