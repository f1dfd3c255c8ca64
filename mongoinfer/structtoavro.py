"""Converts inferred struct types to Avro schema format."""

import json
from typing import Dict, List, Set

from mongoinfer.common import avro_name, avro_namespace, ensure_output_dir
from mongoinfer.structtypes import (
    ArrayType,
    AtomicType,
    DataType,
    StructType,
)

JsonNode = Dict[str, 'JsonNode'] | List['JsonNode'] | str | bool | int | float | None

ALTNAMES_KEY = 'mongo'

AVRO_PRIMITIVES: Dict[AtomicType, JsonNode] = {
    AtomicType.NULL: 'null',
    AtomicType.BOOLEAN: 'boolean',
    AtomicType.INTEGER: 'int',
    AtomicType.LONG: 'long',
    AtomicType.DOUBLE: 'double',
    AtomicType.STRING: 'string',
    AtomicType.BINARY: 'bytes',
    AtomicType.DATE: {'type': 'long', 'logicalType': 'timestamp-millis'},
    AtomicType.TIMESTAMP: {'type': 'long', 'logicalType': 'timestamp-millis'},
    # conflicting values are materialized as their string form
    AtomicType.CONFLICT: 'string',
}


def _make_nullable(avro_type: JsonNode) -> JsonNode:
    if avro_type == 'null':
        return 'null'
    return ['null', avro_type]


def _unique_name(name: str, taken: Set[str]) -> str:
    candidate = name
    counter = 1
    while candidate in taken:
        candidate = f'{name}{counter}'
        counter += 1
    taken.add(candidate)
    return candidate


class StructToAvro:
    """Converts struct types to Avro records."""

    def __init__(self, namespace: str = ''):
        self.namespace = avro_namespace(namespace) if namespace else ''

    def convert_type(self, data_type: DataType, type_name: str, namespace: str) -> JsonNode:
        """Converts a structural type to an Avro type.

        Args:
            data_type: The type to convert
            type_name: Name to use if the type becomes a record
            namespace: Namespace of a record created for this type
        """
        if isinstance(data_type, StructType):
            return self.convert_struct(data_type, type_name, namespace)
        if isinstance(data_type, ArrayType):
            items = self.convert_type(data_type.element_type, type_name, namespace)
            if data_type.contains_null:
                items = _make_nullable(items)
            return {'type': 'array', 'items': items}
        if data_type == AtomicType.SKIP:
            raise ValueError(f"Type '{type_name}' has no type information; canonicalize the schema first")
        return AVRO_PRIMITIVES[data_type]

    def convert_struct(self, struct_type: StructType, type_name: str, namespace: str) -> Dict[str, JsonNode]:
        name = avro_name(type_name)
        record: Dict[str, JsonNode] = {
            'type': 'record',
            'name': name,
        }
        if namespace:
            record['namespace'] = namespace
        nested_namespace = (namespace + '.' if namespace else '') + name + 'Types'

        fields: List[JsonNode] = []
        taken: Set[str] = set()
        for struct_field in struct_type.fields:
            field_name = _unique_name(avro_name(struct_field.name), taken)
            field_type = self.convert_type(struct_field.data_type, field_name, nested_namespace)
            field: Dict[str, JsonNode] = {'name': field_name}
            if struct_field.nullable:
                field['type'] = _make_nullable(field_type)
                field['default'] = None
            else:
                field['type'] = field_type
            if field_name != struct_field.name:
                field['altnames'] = {ALTNAMES_KEY: struct_field.name}
            fields.append(field)
        record['fields'] = fields
        return record


def convert_struct_to_avro_schema(
    struct_type: StructType,
    type_name: str = 'Document',
    namespace: str = ''
) -> Dict[str, JsonNode]:
    """Converts a canonical struct type to an Avro record schema.

    Args:
        struct_type: The inferred schema
        type_name: Name of the root record
        namespace: Namespace of the root record
    """
    converter = StructToAvro(namespace)
    return converter.convert_struct(struct_type, type_name, converter.namespace)


def write_avro_schema(
    struct_type: StructType,
    avro_schema_file: str,
    type_name: str = 'Document',
    namespace: str = ''
) -> None:
    """Writes the Avro rendering of a struct type to a file."""
    schema = convert_struct_to_avro_schema(struct_type, type_name, namespace)
    ensure_output_dir(avro_schema_file)
    with open(avro_schema_file, 'w', encoding='utf-8') as f:
        json.dump(schema, f, indent=2)


def write_struct_schema(struct_type: StructType, schema_file: str) -> None:
    """Writes the struct JSON rendering of a struct type to a file."""
    ensure_output_dir(schema_file)
    with open(schema_file, 'w', encoding='utf-8') as f:
        json.dump(struct_type.json_value(), f, indent=2)
