"""
Schema registry for nem-mms-ingest.

Maps a ``SchemaKey`` -- the ``(category, report_type, version)`` triple
found in fields 1-3 of an ``I`` row -- to a ``Schema`` that knows how to
turn the matching ``D`` rows into a typed record.

A ``Schema`` is derived from a record model in ``records.py``: the model's
field order is the file's column order, and each field's annotation gives
its conversion rule (string / int / float / timestamp, optional or not).
Adding a dataset kind therefore means writing one model and registering
it; the section scanner never changes.

Lookups are exact and case-sensitive. There is no fallback or
prefix matching: an unknown key is an "unsupported dataset" outcome that
the scanner reports, not an error here.
"""

from __future__ import annotations

import logging
import types
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, NamedTuple, Sequence, Union, get_args, get_origin

from pydantic import ValidationError

from nem_mms_ingest.config import DEFAULT_TIMESTAMP_FORMAT, DEFAULT_TIMEZONE
from nem_mms_ingest.exceptions import FieldTypeError, SchemaRegistrationError, UnrecognizedSchemaError
from nem_mms_ingest.records import KNOWN_RECORD_MODELS, MmsRecord
from nem_mms_ingest.timeconv import to_utc

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ","

# Model fields filled from the row's tag rather than from data columns
_TAG_FIELDS = ("row_type", "category", "report_type", "report_version")
_NON_COLUMN_FIELDS = frozenset(_TAG_FIELDS) | {"kind"}


class SchemaKey(NamedTuple):
    """Identity of one MMS section kind, e.g. ``("TRADING", "PRICE", "3")``."""
    category: str
    report_type: str
    version: str

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> SchemaKey:
        """Build a key from a classified row's fields (field 0 is the row tag).

        Short rows are padded with empty strings so they simply never match.
        """
        padded = list(fields[1:4]) + [""] * max(0, 4 - len(fields))
        return cls(*padded[:3])

    @property
    def identifier(self) -> str:
        """The key joined with ``KEY_SEPARATOR``: ``TRADING,PRICE,3``."""
        return KEY_SEPARATOR.join(self)

    def __str__(self) -> str:
        return self.identifier


class FieldType(str, Enum):
    """Conversion rule of one data column."""
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    TIMESTAMP = "timestamp"


_TYPE_BY_PYTHON = {
    str: FieldType.STRING,
    int: FieldType.INT,
    float: FieldType.FLOAT,
    datetime: FieldType.TIMESTAMP,
}


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One data column of a schema."""
    name: str           # record attribute
    column: str         # AEMO column name from the I row
    type: FieldType
    optional: bool


def _field_type(annotation: object) -> tuple[FieldType, bool]:
    """Resolve a model annotation such as ``float | None`` to (FieldType, optional)."""
    optional = False
    base = annotation
    if get_origin(annotation) in (Union, types.UnionType):
        args = get_args(annotation)
        optional = type(None) in args
        non_null = [a for a in args if a is not type(None)]
        if len(non_null) != 1:
            raise TypeError(f"Unsupported union annotation: {annotation!r}")
        base = non_null[0]
    try:
        return _TYPE_BY_PYTHON[base], optional
    except KeyError:
        raise TypeError(f"Unsupported field annotation: {annotation!r}") from None


@dataclass(frozen=True)
class Schema:
    """Deserialization rule for the Data rows of one section kind."""
    key: SchemaKey
    model: type[MmsRecord]
    fields: tuple[FieldSpec, ...]

    @classmethod
    def from_model(cls, model: type[MmsRecord]) -> Schema:
        """Derive a schema from a record model's ``SCHEMA_KEY`` and field order."""
        specs: list[FieldSpec] = []
        for name, info in model.model_fields.items():
            if name in _NON_COLUMN_FIELDS:
                continue
            field_type, optional = _field_type(info.annotation)
            specs.append(
                FieldSpec(
                    name=name,
                    column=info.alias or name.upper(),
                    type=field_type,
                    optional=optional,
                )
            )
        return cls(key=SchemaKey(*model.SCHEMA_KEY), model=model, fields=tuple(specs))

    @property
    def kind(self) -> str:
        """The record kind tag, e.g. ``"price"``."""
        return self.model.model_fields["kind"].default

    @property
    def column_names(self) -> list[str]:
        return [f.column for f in self.fields]

    @property
    def width(self) -> int:
        """Total fields in a Data row of this schema, tag fields included."""
        return len(_TAG_FIELDS) + len(self.fields)

    def deserialize(
        self,
        fields: Sequence[str],
        *,
        tz: str = DEFAULT_TIMEZONE,
        fmt: str = DEFAULT_TIMESTAMP_FORMAT,
    ) -> MmsRecord:
        """Convert a Data row's fields into a typed record.

        Blank cells become ``None`` for optional columns. Timestamp columns
        are converted from *tz* local time to UTC here; numeric coercion is
        left to pydantic.

        Raises:
            FieldTypeError: Wrong field count, blank required column, or a
                value pydantic cannot coerce to the declared type.
            MalformedTimestampError: A timestamp column does not match *fmt*.
            AmbiguousLocalTimeError: A timestamp falls in a DST gap/overlap.
        """
        if len(fields) != self.width:
            raise FieldTypeError(
                f"{self.key}: expected {self.width} fields, got {len(fields)}"
            )

        values: dict[str, object] = dict(zip(_TAG_FIELDS, fields[:4]))
        for spec, raw in zip(self.fields, fields[4:]):
            if raw == "":
                if not spec.optional:
                    raise FieldTypeError(
                        f"{spec.column}: missing required {spec.type.value}",
                        field=spec.name,
                    )
                values[spec.name] = None
            elif spec.type is FieldType.TIMESTAMP:
                values[spec.name] = to_utc(raw, tz, fmt, field=spec.name)
            else:
                values[spec.name] = raw

        try:
            return self.model.model_validate(values)
        except ValidationError as exc:
            err = exc.errors()[0]
            loc = str(err["loc"][0]) if err["loc"] else None
            # pydantic reports the alias (AEMO column name) in ``loc``
            name = next((f.name for f in self.fields if f.column == loc), loc)
            raise FieldTypeError(
                f"{name}: {err['msg']} (got {err.get('input')!r})",
                field=name,
            ) from None


class SchemaRegistry:
    """Exact-match mapping ``SchemaKey -> Schema``.

    Build it once before parsing and treat it as read-only afterwards;
    concurrent scans share it without locking.
    """

    def __init__(self, schemas: Iterable[Schema] = ()) -> None:
        self._schemas: dict[SchemaKey, Schema] = {}
        for schema in schemas:
            self.register(schema.key, schema)

    def register(self, key: Sequence[str], schema: Schema) -> None:
        """Register *schema* under *key*.

        Raises:
            SchemaRegistrationError: If *key* is already registered.
        """
        key = SchemaKey(*key)
        if key in self._schemas:
            raise SchemaRegistrationError(
                f"Schema key '{key}' is already registered "
                f"({self._schemas[key].model.__name__})"
            )
        self._schemas[key] = schema
        logger.debug("Registered schema %s -> %s", key, schema.model.__name__)

    def register_model(self, model: type[MmsRecord]) -> Schema:
        """Derive a schema from *model* and register it under its own key."""
        schema = Schema.from_model(model)
        self.register(schema.key, schema)
        return schema

    def lookup(self, key: Sequence[str]) -> Schema | None:
        """Return the schema for *key*, or ``None`` if it is not registered."""
        return self._schemas.get(SchemaKey(*key))

    def require(self, key: Sequence[str]) -> Schema:
        """Like ``lookup()`` but raises for an unregistered key.

        Raises:
            UnrecognizedSchemaError: If *key* is not registered.
        """
        schema = self.lookup(key)
        if schema is None:
            raise UnrecognizedSchemaError(
                f"No schema registered for '{SchemaKey(*key)}'. "
                f"Known: {[k.identifier for k in self._schemas]}"
            )
        return schema

    def keys(self) -> list[SchemaKey]:
        return list(self._schemas)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, tuple) and len(key) == 3 and SchemaKey(*key) in self._schemas

    def __iter__(self) -> Iterator[Schema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)

    def __repr__(self) -> str:
        return f"SchemaRegistry({[k.identifier for k in self._schemas]})"


def build_registry(models: Iterable[type[MmsRecord]]) -> SchemaRegistry:
    """Build a fresh registry from record models."""
    registry = SchemaRegistry()
    for model in models:
        registry.register_model(model)
    return registry


_DEFAULT_REGISTRY: SchemaRegistry | None = None


def default_registry() -> SchemaRegistry:
    """The shared registry of the four known NEMWEB dataset kinds.

    Built lazily on first use. Callers that need extra kinds should use
    ``build_registry()`` instead of registering into this one.
    """
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = build_registry(KNOWN_RECORD_MODELS)
        logger.debug("Built default registry: %s", _DEFAULT_REGISTRY)
    return _DEFAULT_REGISTRY
