"""BSON value tags read off decoded document values."""

import datetime
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any

from bson.binary import Binary
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.int64 import Int64
from bson.objectid import ObjectId
from bson.timestamp import Timestamp

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


class BsonTag(Enum):
    """The BSON types that schema inference distinguishes."""
    NULL = 'null'
    BOOLEAN = 'bool'
    INT32 = 'int'
    INT64 = 'long'
    DOUBLE = 'double'
    STRING = 'string'
    BINARY = 'binData'
    DATE_TIME = 'date'
    TIMESTAMP = 'timestamp'
    OBJECT_ID = 'objectId'
    ARRAY = 'array'
    DOCUMENT = 'object'
    OTHER = 'other'


CONTAINER_TAGS = (BsonTag.ARRAY, BsonTag.DOCUMENT)


def get_bson_tag(value: Any) -> BsonTag:
    """Returns the tag of a value as decoded by the bson package.

    Plain Python ints are classified by range, since the decoder yields ``int``
    for BSON int32 and ``Int64`` for BSON int64. Values of any type the
    inference does not model (Decimal128, Regex, Code, MinKey, ...) are
    reported as ``OTHER``.
    """
    if value is None:
        return BsonTag.NULL
    # bool is a subclass of int
    if isinstance(value, bool):
        return BsonTag.BOOLEAN
    if isinstance(value, Int64):
        return BsonTag.INT64
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return BsonTag.INT32
        return BsonTag.INT64
    if isinstance(value, float):
        return BsonTag.DOUBLE
    # Code is a subclass of str
    if isinstance(value, Code):
        return BsonTag.OTHER
    if isinstance(value, str):
        return BsonTag.STRING
    if isinstance(value, (bytes, Binary, uuid.UUID)):
        return BsonTag.BINARY
    if isinstance(value, (datetime.datetime, DatetimeMS)):
        return BsonTag.DATE_TIME
    if isinstance(value, Timestamp):
        return BsonTag.TIMESTAMP
    if isinstance(value, ObjectId):
        return BsonTag.OBJECT_ID
    if isinstance(value, (list, tuple)):
        return BsonTag.ARRAY
    if isinstance(value, Mapping):
        return BsonTag.DOCUMENT
    return BsonTag.OTHER
