"""Schema inference for MongoDB documents.

This module provides the core inference logic used by:
- m2a/m2s: Infer schema from a sampled MongoDB collection
- ej2a: Infer schema from MongoDB Extended JSON files

Each document is turned into a struct type, the struct types are merged
pairwise with ``compatible_type`` through a tree-shaped reduction, and the
merged type is canonicalized. ``compatible_type`` is commutative and
associative, so the shape of the reduction never changes the result.
"""

import logging
from concurrent.futures import Executor
from typing import Any, Iterable, Mapping, Optional, Sequence

from mongoinfer.bsontags import BsonTag, CONTAINER_TAGS, get_bson_tag
from mongoinfer.structtypes import (
    ArrayType,
    BinaryType,
    BooleanType,
    ConflictType,
    DataType,
    DateType,
    DoubleType,
    IntegerType,
    LongType,
    NUMERIC_PRECEDENCE,
    NullType,
    SkipFieldType,
    StringType,
    StructField,
    StructType,
    TimestampType,
    is_numeric,
)
from mongoinfer.tree_aggregate import tree_aggregate

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = {
    BsonTag.NULL: NullType,
    BsonTag.BOOLEAN: BooleanType,
    BsonTag.INT32: IntegerType,
    BsonTag.INT64: LongType,
    BsonTag.DOUBLE: DoubleType,
    BsonTag.STRING: StringType,
    BsonTag.OBJECT_ID: StringType,
    BsonTag.BINARY: BinaryType,
    BsonTag.DATE_TIME: DateType,
    BsonTag.TIMESTAMP: TimestampType,
}


def get_schema_from_document(document: Mapping[str, Any]) -> StructType:
    """Maps a document to a struct with one nullable field per key."""
    return StructType(
        StructField(key, get_data_type(value), nullable=True)
        for key, value in document.items())


def get_data_type(value: Any) -> DataType:
    """Maps a single BSON value to its structural type."""
    tag = get_bson_tag(value)
    if tag == BsonTag.DOCUMENT:
        return get_schema_from_document(value)
    if tag == BsonTag.ARRAY:
        return get_schema_from_array(value)
    return PRIMITIVE_TYPES.get(tag, ConflictType)


def get_schema_from_array(values: Sequence[Any]) -> DataType:
    """Infers the type of an array value from its elements.

    An empty array carries no information and yields ``SkipFieldType``.
    Arrays of a single primitive tag become arrays of that type. Arrays of
    nested arrays or documents must agree structurally element by element;
    the scan stops at the first disagreement with ``ConflictType``. An array
    of nulls mixed with one other tag is resolved from its null elements
    alone. Any other mix of tags is a conflict.
    """
    while True:
        tags = {get_bson_tag(value) for value in values}
        if not tags:
            return SkipFieldType
        if len(tags) == 1:
            tag = next(iter(tags))
            if tag in CONTAINER_TAGS:
                return _get_schema_from_container_array(values)
            return ArrayType(get_data_type(values[0]), contains_null=True)
        if len(tags) == 2 and BsonTag.NULL in tags:
            values = [value for value in values if get_bson_tag(value) == BsonTag.NULL]
            continue
        return ConflictType


def _get_schema_from_container_array(values: Sequence[Any]) -> DataType:
    element_type: Optional[DataType] = None
    for value in values:
        value_type = get_data_type(value)
        if element_type is not None and value_type != element_type:
            element_type = ConflictType
            break
        element_type = value_type
    if element_type in (SkipFieldType, ConflictType):
        return element_type
    return ArrayType(element_type, contains_null=True)


def find_tightest_common_type(t1: DataType, t2: DataType) -> Optional[DataType]:
    """Finds the narrowest type both inputs widen to without loss.

    Returns None if the types need structural merging or cannot be widened.
    """
    if t1 == t2:
        return t1
    if t1 == NullType:
        return t2
    if t2 == NullType:
        return t1
    if is_numeric(t1) and is_numeric(t2):
        return max(t1, t2, key=NUMERIC_PRECEDENCE.index)
    return None


def compatible_type(t1: DataType, t2: DataType) -> DataType:
    """Gets the type that both input types fit into.

    For simple types, returns ``ConflictType`` if the types do not match.

    For complex types:
    - ArrayTypes: element types are merged recursively and ``contains_null``
      is true if it is true on either side.
    - StructTypes: fields are unioned by name, shared fields are merged
      recursively, every field is nullable and the fields are sorted by name.

    ``SkipFieldType`` is the identity on both sides.

    Args:
        t1: The type of the first element
        t2: The type of the second element

    Returns:
        The type that matches both input types
    """
    if t1 == SkipFieldType:
        return t2
    if t2 == SkipFieldType:
        return t1
    common = find_tightest_common_type(t1, t2)
    if common is not None:
        return common
    if isinstance(t1, StructType) and isinstance(t2, StructType):
        return _merge_struct_types(t1, t2)
    if isinstance(t1, ArrayType) and isinstance(t2, ArrayType):
        return ArrayType(
            compatible_type(t1.element_type, t2.element_type),
            t1.contains_null or t2.contains_null)
    return ConflictType


def _merge_struct_types(s1: StructType, s2: StructType) -> StructType:
    merged = {}
    for field in list(s1.fields) + list(s2.fields):
        if field.name in merged:
            merged[field.name] = compatible_type(merged[field.name], field.data_type)
        else:
            merged[field.name] = field.data_type
    return StructType(
        StructField(name, merged[name], nullable=True)
        for name in sorted(merged))


def canonicalize_type(data_type: DataType) -> Optional[DataType]:
    """Removes structs without fields and skipped fields.

    Returns None if nothing of the type remains.
    """
    if isinstance(data_type, ArrayType):
        element_type = canonicalize_type(data_type.element_type)
        if element_type is None:
            return None
        return ArrayType(element_type, data_type.contains_null)

    if isinstance(data_type, StructType):
        fields = []
        for field in data_type.fields:
            if not field.name or field.data_type == SkipFieldType:
                continue
            field_type = canonicalize_type(field.data_type)
            if field_type is None:
                continue
            if field_type == ConflictType:
                logger.debug("Field '%s' has conflicting types", field.name)
            fields.append(StructField(field.name, field_type, field.nullable))
        if not fields:
            return None
        return StructType(fields)

    return data_type


def _fold_document(schema: DataType, document: Mapping[str, Any]) -> DataType:
    return compatible_type(schema, get_schema_from_document(document))


def infer_schema(
    documents: Iterable[Mapping[str, Any]],
    num_partitions: Optional[int] = None,
    depth: int = 2,
    executor: Optional[Executor] = None
) -> StructType:
    """Infers one schema that covers all sampled documents.

    Args:
        documents: The sampled documents
        num_partitions: Number of partitions the documents are split into
        depth: Depth of the reduction tree
        executor: Optional executor the partitions are folded on

    Returns:
        The canonical schema; an empty struct if no fields remain
    """
    documents = documents if isinstance(documents, list) else list(documents)
    root_type = tree_aggregate(
        documents,
        StructType([]),
        _fold_document,
        compatible_type,
        num_partitions=num_partitions,
        depth=depth,
        executor=executor)

    schema = canonicalize_type(root_type)
    if isinstance(schema, StructType):
        return schema
    # canonicalize_type erases all empty structs, including the root
    return StructType([])

