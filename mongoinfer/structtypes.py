"""Structural types produced by document schema inference.

The type algebra is closed: an atomic type (including the two sentinels
``ConflictType`` and ``SkipFieldType``), an array of a structural type, or a
struct of named structural types. All instances are immutable and compare by
value, so they can be used as dictionary keys and compared with ``==``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Tuple, Union


class AtomicType(Enum):
    """Leaf types and the two control sentinels."""
    NULL = 'null'
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    LONG = 'long'
    DOUBLE = 'double'
    STRING = 'string'
    BINARY = 'binary'
    DATE = 'date'
    TIMESTAMP = 'timestamp'
    # no consistent type could be determined
    CONFLICT = 'conflict'
    # no type information was observed
    SKIP = 'skip'

    def simple_string(self) -> str:
        return _SIMPLE_NAMES[self]

    def json_value(self) -> str:
        return self.value

    def __repr__(self) -> str:
        if self is AtomicType.SKIP:
            return 'SkipFieldType'
        return f'{self.name.capitalize()}Type'


_SIMPLE_NAMES = {
    AtomicType.NULL: 'null',
    AtomicType.BOOLEAN: 'boolean',
    AtomicType.INTEGER: 'int',
    AtomicType.LONG: 'bigint',
    AtomicType.DOUBLE: 'double',
    AtomicType.STRING: 'string',
    AtomicType.BINARY: 'binary',
    AtomicType.DATE: 'date',
    AtomicType.TIMESTAMP: 'timestamp',
    AtomicType.CONFLICT: 'conflict',
    AtomicType.SKIP: 'skip',
}

NullType = AtomicType.NULL
BooleanType = AtomicType.BOOLEAN
IntegerType = AtomicType.INTEGER
LongType = AtomicType.LONG
DoubleType = AtomicType.DOUBLE
StringType = AtomicType.STRING
BinaryType = AtomicType.BINARY
DateType = AtomicType.DATE
TimestampType = AtomicType.TIMESTAMP
ConflictType = AtomicType.CONFLICT
SkipFieldType = AtomicType.SKIP

# Widening order for numeric promotion.
NUMERIC_PRECEDENCE: Tuple[AtomicType, ...] = (IntegerType, LongType, DoubleType)


@dataclass(frozen=True)
class ArrayType:
    """An array whose elements all share ``element_type``."""
    element_type: 'DataType'
    contains_null: bool = True

    def simple_string(self) -> str:
        return f'array<{self.element_type.simple_string()}>'

    def json_value(self) -> Dict[str, Any]:
        return {
            'type': 'array',
            'elementType': self.element_type.json_value(),
            'containsNull': self.contains_null,
        }


@dataclass(frozen=True)
class StructField:
    """A named, typed member of a ``StructType``."""
    name: str
    data_type: 'DataType'
    nullable: bool = True

    def simple_string(self) -> str:
        return f'{self.name}:{self.data_type.simple_string()}'

    def json_value(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.data_type.json_value(),
            'nullable': self.nullable,
            'metadata': {},
        }


@dataclass(frozen=True)
class StructType:
    """An ordered sequence of fields with unique names."""
    fields: Tuple[StructField, ...] = ()

    def __init__(self, fields: Iterable[StructField] = ()):
        fields = tuple(fields)
        seen = set()
        for field in fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name '{field.name}' in struct")
            seen.add(field.name)
        object.__setattr__(self, 'fields', fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(field.name for field in self.fields)

    def __getitem__(self, name: str) -> StructField:
        for field in self.fields:
            if field.name == name:
                return field
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(field.name == name for field in self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def simple_string(self) -> str:
        return 'struct<' + ','.join(field.simple_string() for field in self.fields) + '>'

    def json_value(self) -> Dict[str, Any]:
        return {
            'type': 'struct',
            'fields': [field.json_value() for field in self.fields],
        }


DataType = Union[AtomicType, ArrayType, StructType]


def is_numeric(data_type: DataType) -> bool:
    """Check whether a type takes part in numeric widening."""
    return data_type in NUMERIC_PRECEDENCE
