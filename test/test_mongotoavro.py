"""Tests for sampling documents and writing inferred schemas."""

import json
import os
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from bson.int64 import Int64
from bson.objectid import ObjectId
from fastavro.schema import parse_schema
from pymongo.errors import ServerSelectionTimeoutError

from mongoinfer.config import ReadConfig
from mongoinfer.mongotoavro import (
    MongoInferenceError,
    build_sample_pipeline,
    convert_ejson_to_avro,
    convert_mongo_to_avro,
    convert_mongo_to_struct,
    infer_collection_schema,
    load_extended_json_documents,
    sample_collection,
)
from mongoinfer.structtypes import (
    ArrayType,
    DateType,
    LongType,
    StringType,
    StructField,
    StructType,
)

ORDERS = [
    {"_id": ObjectId(), "customer": "alice", "total": 10, "items": ["a", "b"]},
    {"_id": ObjectId(), "customer": "bob", "total": Int64(20), "items": []},
    {"_id": ObjectId(), "customer": None, "total": 2 ** 40},
]


def mock_client(documents):
    """Creates a client mock whose collections return the given documents."""
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value.aggregate.return_value = iter(documents)
    return client


def write_temp_file(content: str, suffix: str = '.json') -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False, encoding='utf-8') as f:
        f.write(content)
        return f.name


class TestSampling(unittest.TestCase):
    """Test cases for sampling documents from MongoDB."""

    def test_pipeline(self):
        config = ReadConfig(database="shop", collection="orders", sample_size=5)
        self.assertEqual(build_sample_pipeline(config), [{'$sample': {'size': 5}}])

    def test_pipeline_with_query(self):
        config = ReadConfig(database="shop", collection="orders", sample_size=5, query={"status": "open"})
        self.assertEqual(build_sample_pipeline(config),
                         [{'$match': {'status': 'open'}}, {'$sample': {'size': 5}}])

    def test_sample_collection(self):
        client = mock_client(ORDERS)
        config = ReadConfig(database="shop", collection="orders", sample_size=3)

        documents = sample_collection(config, client)

        self.assertEqual(documents, ORDERS)
        client.__getitem__.assert_called_with("shop")
        client.__getitem__.return_value.__getitem__.assert_called_with("orders")
        client.__getitem__.return_value.__getitem__.return_value.aggregate.assert_called_once_with(
            [{'$sample': {'size': 3}}])
        client.close.assert_not_called()

    def test_sample_collection_wraps_errors(self):
        client = MagicMock()
        client.__getitem__.return_value.__getitem__.return_value.aggregate.side_effect = \
            ServerSelectionTimeoutError("no servers")
        config = ReadConfig(database="shop", collection="orders")

        with self.assertRaises(MongoInferenceError) as context:
            sample_collection(config, client)

        self.assertEqual(context.exception.namespace, "shop.orders")
        self.assertIsInstance(context.exception.__cause__, ServerSelectionTimeoutError)

    def test_sample_collection_validates_config(self):
        with self.assertRaises(ValueError):
            sample_collection(ReadConfig(database="shop", collection="orders", sample_size=0), MagicMock())

    @patch('mongoinfer.mongotoavro.MongoClient')
    def test_owned_client_is_closed(self, client_class):
        client_class.return_value = mock_client(ORDERS)
        config = ReadConfig.from_uri("mongodb://localhost/shop.orders")

        sample_collection(config)

        client_class.assert_called_once_with("mongodb://localhost/shop.orders")
        client_class.return_value.close.assert_called_once()

    def test_infer_collection_schema(self):
        config = ReadConfig(database="shop", collection="orders", sample_size=3)

        schema = infer_collection_schema(config, mock_client(ORDERS))

        self.assertEqual(schema, StructType([
            StructField("_id", StringType),
            StructField("customer", StringType),
            StructField("items", ArrayType(StringType)),
            StructField("total", LongType),
        ]))


class TestConvertMongo(unittest.TestCase):
    """Test cases for the collection conversion entry points."""

    @patch('mongoinfer.mongotoavro.MongoClient')
    def test_convert_mongo_to_avro(self, client_class):
        client_class.return_value = mock_client(ORDERS)
        output_file = os.path.join(tempfile.mkdtemp(), 'orders.avsc')

        convert_mongo_to_avro("mongodb://localhost/shop.orders", output_file,
                              sample_size=3, avro_namespace='com.shop')

        with open(output_file, 'r', encoding='utf-8') as f:
            schema = json.load(f)
        parse_schema(schema)
        self.assertEqual(schema['name'], 'orders')
        self.assertEqual(schema['namespace'], 'com.shop')
        self.assertEqual([f['name'] for f in schema['fields']], ['_id', 'customer', 'items', 'total'])

    @patch('mongoinfer.mongotoavro.MongoClient')
    def test_convert_mongo_to_struct_with_query(self, client_class):
        client_class.return_value = mock_client(ORDERS)
        output_file = os.path.join(tempfile.mkdtemp(), 'orders.json')

        convert_mongo_to_struct("mongodb://localhost", output_file, database="shop", collection="orders",
                                sample_size=3, query='{"created": {"$gte": {"$date": "2024-01-01T00:00:00Z"}}}')

        aggregate = client_class.return_value.__getitem__.return_value.__getitem__.return_value.aggregate
        pipeline = aggregate.call_args[0][0]
        self.assertEqual(list(pipeline[0].keys()), ['$match'])
        self.assertEqual(pipeline[1], {'$sample': {'size': 3}})
        with open(output_file, 'r', encoding='utf-8') as f:
            schema = json.load(f)
        self.assertEqual(schema['type'], 'struct')
        self.assertEqual(schema['fields'][3], {'name': 'total', 'type': 'long', 'nullable': True, 'metadata': {}})

    def test_connection_string_required(self):
        with self.assertRaises(ValueError):
            convert_mongo_to_avro("", "out.avsc")


class TestExtendedJson(unittest.TestCase):
    """Test cases for reading MongoDB Extended JSON files."""

    def test_load_single_document_and_array(self):
        single = write_temp_file('{"_id": {"$oid": "65a000000000000000000000"}, "n": {"$numberLong": "5"}}')
        array = write_temp_file('[{"a": 1}, {"a": 2}, 3]')
        try:
            documents = load_extended_json_documents([single, array])
        finally:
            os.unlink(single)
            os.unlink(array)

        self.assertEqual(len(documents), 3)
        self.assertIsInstance(documents[0]["_id"], ObjectId)
        self.assertIsInstance(documents[0]["n"], Int64)

    def test_load_json_lines_with_sample_size(self):
        lines = write_temp_file('\n'.join(json.dumps({"i": i}) for i in range(10)) + '\nnot json\n', '.jsonl')
        try:
            self.assertEqual(len(load_extended_json_documents([lines], sample_size=4)), 4)
            self.assertEqual(len(load_extended_json_documents([lines])), 10)
        finally:
            os.unlink(lines)

    def test_convert_ejson_to_avro(self):
        input_file = write_temp_file('\n'.join([
            '{"created": {"$date": "2024-01-01T00:00:00Z"}, "tags": []}',
            '{"created": {"$date": "2024-02-01T00:00:00Z"}, "tags": ["x"], "meta": {}}',
        ]), '.jsonl')
        output_file = os.path.join(tempfile.mkdtemp(), 'events.avsc')
        try:
            convert_ejson_to_avro([input_file], output_file, type_name='Event', avro_namespace='com.test')
        finally:
            os.unlink(input_file)

        with open(output_file, 'r', encoding='utf-8') as f:
            schema = json.load(f)
        parse_schema(schema)
        fields_by_name = {f['name']: f for f in schema['fields']}
        self.assertEqual(set(fields_by_name), {'created', 'tags'})
        self.assertEqual(fields_by_name['created']['type'],
                         ['null', {'type': 'long', 'logicalType': 'timestamp-millis'}])

    def test_convert_ejson_requires_documents(self):
        empty = write_temp_file('')
        try:
            with self.assertRaises(ValueError):
                convert_ejson_to_avro([empty], os.path.join(tempfile.mkdtemp(), 'x.avsc'))
        finally:
            os.unlink(empty)
        with self.assertRaises(ValueError):
            convert_ejson_to_avro([], 'x.avsc')


if __name__ == '__main__':
    unittest.main()
