"""Column-to-property schemas.

A schema maps a sheet column name to the record property it fills and to
the cast applied to the cell value on the way. Definitions are usually
written as plain dictionaries::

    {
        "Order ID": {"prop": "id", "type": "number"},
        "Placed": {"prop": "placed_at", "type": "date"},
        "Customer": "customer",
    }

``type`` is one of ``"number"``, ``"string"``, ``"date"``, a Python type
(``int``, ``float``, ``str``, ``datetime``) or any callable taking the cell
value. JSON-compatible parts of a definition are checked against a Draft 7
JSON Schema before the entries are built.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from jsonschema import Draft7Validator

from fast_sheet_reader.services.date_converter import try_convert_date
from fast_sheet_reader.utils.exceptions import (
    ConversionError,
    SchemaDefinitionError,
    SchemaParseError,
)
from fast_sheet_reader.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "SCHEMA_DEFINITION_SCHEMA",
    "CastKind",
    "Schema",
    "SchemaEntry",
    "parse_schema",
]

Caster = Callable[[Any], Any]


class CastKind(str, Enum):
    """How a schema entry converts the cell value."""

    NONE = "none"
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    CUSTOM = "custom"


# Python types accepted as a ``type`` shorthand
_TYPE_CASTS: dict[Any, CastKind] = {
    int: CastKind.NUMBER,
    float: CastKind.NUMBER,
    str: CastKind.STRING,
    datetime: CastKind.DATE,
    date: CastKind.DATE,
}

SCHEMA_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Column schema definition",
    "type": "object",
    "minProperties": 1,
    "additionalProperties": {
        "oneOf": [
            {"type": "string", "minLength": 1},
            {
                "type": "object",
                "required": ["prop"],
                "properties": {
                    "prop": {"type": "string", "minLength": 1},
                    "type": {"enum": ["number", "string", "date"]},
                },
                "additionalProperties": False,
            },
        ]
    },
}

_definition_validator = Draft7Validator(SCHEMA_DEFINITION_SCHEMA)


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return value
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return value
        return value if math.isnan(number) else number
    return value


def _to_string(value: Any) -> Any:
    try:
        return str(value)
    except (TypeError, ValueError):
        return value


@dataclass(frozen=True)
class SchemaEntry:
    """Target property and cast for one column."""

    target_property: str
    cast: CastKind = CastKind.NONE
    custom: Caster | None = None

    def __post_init__(self) -> None:
        if not self.target_property:
            raise SchemaDefinitionError("Schema entry needs a target property")
        if self.cast is CastKind.CUSTOM and self.custom is None:
            raise SchemaDefinitionError(
                f"Custom cast for '{self.target_property}' needs a function"
            )
        if self.cast is not CastKind.CUSTOM and self.custom is not None:
            raise SchemaDefinitionError(
                f"Function given for '{self.target_property}' without a custom cast"
            )

    def apply(self, value: Any, epoch1904: bool = False) -> Any:
        """Cast a cell value.

        Number and string casts that fail return the value unchanged, and
        so does a date cast.

        Raises:
            ConversionError: If a custom cast function raises.
        """
        if self.cast is CastKind.NUMBER:
            return _to_number(value)
        if self.cast is CastKind.STRING:
            return _to_string(value)
        if self.cast is CastKind.DATE:
            return try_convert_date(value, epoch1904)
        if self.cast is CastKind.CUSTOM:
            assert self.custom is not None
            try:
                return self.custom(value)
            except Exception as e:
                raise ConversionError(
                    f"Custom cast for '{self.target_property}' failed: {e}",
                    value=value,
                    target=self.target_property,
                ) from e
        return value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"prop": self.target_property}
        if self.cast is CastKind.CUSTOM:
            result["type"] = getattr(self.custom, "__name__", "custom")
        elif self.cast is not CastKind.NONE:
            result["type"] = self.cast.value
        return result


class Schema(Mapping[str, SchemaEntry]):
    """Ordered mapping of column name to SchemaEntry.

    Column names are matched case-sensitively against the header.
    """

    def __init__(self, entries: Mapping[str, SchemaEntry]) -> None:
        if not entries:
            raise SchemaDefinitionError("Schema must define at least one column")
        self._entries = dict(entries)

    def __getitem__(self, column: str) -> SchemaEntry:
        return self._entries[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Schema({list(self._entries)!r})"

    @property
    def columns(self) -> list[str]:
        return list(self._entries)

    @classmethod
    def from_definition(cls, definition: Mapping[str, Any]) -> Schema:
        """Build a schema from a dictionary definition.

        Raises:
            SchemaDefinitionError: If the definition is malformed.
        """
        if not isinstance(definition, Mapping):
            raise SchemaDefinitionError(
                "Schema must be a mapping of column names to entries",
                errors=[f"Expected an object, got {type(definition).__name__}"],
            )

        _validate_definition(definition)

        entries = {
            str(column): _build_entry(str(column), spec)
            for column, spec in definition.items()
        }
        logger.debug("Schema parsed", columns=len(entries))
        return cls(entries)

    @classmethod
    def from_json(cls, text: str | bytes) -> Schema:
        """Parse a JSON schema definition.

        Raises:
            SchemaParseError: If the text is not valid JSON.
            SchemaDefinitionError: If the definition is malformed.
        """
        try:
            definition = json.loads(text)
        except json.JSONDecodeError as e:
            raise SchemaParseError(
                f"Schema is not valid JSON: {e.msg}",
                details={"line": e.lineno, "column": e.colno},
            ) from e
        return cls.from_definition(definition)

    def to_dict(self) -> dict[str, Any]:
        return {column: entry.to_dict() for column, entry in self._entries.items()}


def _json_view(definition: Mapping[str, Any]) -> dict[str, Any]:
    """Strip the parts of a definition JSON Schema cannot describe."""
    view: dict[str, Any] = {}
    for column, spec in definition.items():
        if isinstance(spec, SchemaEntry):
            view[str(column)] = {"prop": spec.target_property}
        elif isinstance(spec, Mapping) and "type" in spec and not isinstance(
            spec["type"], str
        ):
            view[str(column)] = {k: v for k, v in spec.items() if k != "type"}
        else:
            view[str(column)] = spec
    return view


def _validate_definition(definition: Mapping[str, Any]) -> None:
    errors = [
        f"{'/'.join(str(p) for p in error.absolute_path) or 'root'}: {error.message}"
        for error in sorted(
            _definition_validator.iter_errors(_json_view(definition)),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
    ]
    for column, spec in definition.items():
        if isinstance(spec, Mapping):
            cast = spec.get("type")
            if cast is not None and not isinstance(cast, str) and not callable(cast):
                errors.append(f"{column}: type must be a name or a callable")
    if errors:
        raise SchemaDefinitionError(
            f"Invalid schema definition: {len(errors)} error(s) found",
            errors=errors,
        )


def _build_entry(column: str, spec: Any) -> SchemaEntry:
    if isinstance(spec, SchemaEntry):
        return spec
    if isinstance(spec, str):
        return SchemaEntry(target_property=spec)

    prop = spec["prop"]
    cast = spec.get("type")
    if cast is None:
        return SchemaEntry(target_property=prop)
    if isinstance(cast, str):
        return SchemaEntry(target_property=prop, cast=CastKind(cast))
    if cast in _TYPE_CASTS:
        return SchemaEntry(target_property=prop, cast=_TYPE_CASTS[cast])
    return SchemaEntry(target_property=prop, cast=CastKind.CUSTOM, custom=cast)


def parse_schema(schema: Schema | Mapping[str, Any] | str | None) -> Schema | None:
    """Normalize any accepted schema form to a Schema (or None).

    Strings are parsed as JSON.
    """
    if schema is None or isinstance(schema, Schema):
        return schema
    if isinstance(schema, str):
        return Schema.from_json(schema)
    return Schema.from_definition(schema)
