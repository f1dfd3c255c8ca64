"""Infers schemas from MongoDB collections and Extended JSON files.

This module provides:
- m2a: Infer Avro schema from a sampled MongoDB collection
- m2s: Infer struct schema (JSON) from a sampled MongoDB collection
- ej2a: Infer Avro schema from MongoDB Extended JSON files
"""

import logging
from concurrent.futures import Executor
from typing import Any, Dict, List, Mapping, Optional

from bson import json_util
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from mongoinfer.config import ReadConfig
from mongoinfer.schema_inference import infer_schema
from mongoinfer.structtoavro import write_avro_schema, write_struct_schema
from mongoinfer.structtypes import StructType

logger = logging.getLogger(__name__)


class MongoInferenceError(Exception):
    """
    Exception raised when documents cannot be read from MongoDB.

    Attributes:
        message: Human-readable error description
        namespace: The database.collection that was sampled
    """

    def __init__(self, message: str, namespace: Optional[str] = None):
        self.message = message
        self.namespace = namespace
        super().__init__(f"{message} ({namespace})" if namespace else message)


def build_sample_pipeline(config: ReadConfig) -> List[Dict[str, Any]]:
    """Builds the aggregation pipeline that samples the collection.

    Uses the ``$sample`` aggregation stage, available in server versions 3.2+.
    """
    pipeline: List[Dict[str, Any]] = []
    if config.query:
        pipeline.append({'$match': config.query})
    pipeline.append({'$sample': {'size': config.sample_size}})
    return pipeline


def sample_collection(config: ReadConfig, client: Optional[MongoClient] = None) -> List[Mapping[str, Any]]:
    """Samples documents from the configured collection.

    Args:
        config: Read configuration naming the collection and sample size
        client: Client to use; a client for ``config.uri`` is created and closed if omitted

    Returns:
        The sampled documents
    """
    config.validate()
    owns_client = client is None
    if owns_client:
        client = MongoClient(config.uri)
    try:
        collection = client[config.database][config.collection]
        documents = list(collection.aggregate(build_sample_pipeline(config)))
    except PyMongoError as e:
        raise MongoInferenceError(f"Failed to sample documents: {e}", config.namespace) from e
    finally:
        if owns_client:
            client.close()
    logger.info("Sampled %d documents from %s (sample size %d)",
                len(documents), config.namespace, config.sample_size)
    return documents


def load_extended_json_documents(input_files: List[str], sample_size: int = 0) -> List[Mapping[str, Any]]:
    """Loads documents from MongoDB Extended JSON files.

    Handles single documents, root-level arrays of documents, and JSON Lines
    files such as the output of ``mongoexport``. Values that are not
    documents are skipped.

    Args:
        input_files: List of file paths
        sample_size: Maximum documents to load (0 = all)

    Returns:
        List of decoded documents
    """
    documents: List[Mapping[str, Any]] = []

    def add(value: Any) -> bool:
        if isinstance(value, Mapping):
            documents.append(value)
        return sample_size > 0 and len(documents) >= sample_size

    for file_path in input_files:
        if sample_size > 0 and len(documents) >= sample_size:
            break

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read().strip()

        if not content:
            continue

        try:
            data = json_util.loads(content)
        except ValueError:
            # not a single document, try JSON Lines
            pass
        else:
            for item in data if isinstance(data, list) else [data]:
                if add(item):
                    break
            continue

        for line in content.split('\n'):
            line = line.strip()
            if not line:
                continue
            try:
                if add(json_util.loads(line)):
                    break
            except ValueError:
                logger.warning("Skipping line that is not valid Extended JSON in %s", file_path)

    logger.info("Loaded %d documents from %d files", len(documents), len(input_files))
    return documents


def infer_collection_schema(
    config: ReadConfig,
    client: Optional[MongoClient] = None,
    executor: Optional[Executor] = None
) -> StructType:
    """Samples a collection and infers its schema."""
    documents = sample_collection(config, client)
    return infer_schema(documents, num_partitions=config.num_partitions,
                        depth=config.depth, executor=executor)


def _read_config(
    connection_string: str,
    database: Optional[str],
    collection: Optional[str],
    sample_size: int,
    query: Optional[str]
) -> ReadConfig:
    if not connection_string:
        raise ValueError("connection_string is required")
    return ReadConfig.from_uri(
        connection_string,
        database=database,
        collection=collection,
        sample_size=sample_size,
        query=json_util.loads(query) if query else None)


def convert_mongo_to_avro(
    connection_string: str,
    avro_schema_file: str,
    database: Optional[str] = None,
    collection: Optional[str] = None,
    sample_size: int = 1000,
    query: Optional[str] = None,
    type_name: Optional[str] = None,
    avro_namespace: str = ''
) -> None:
    """Infers an Avro schema from a sampled MongoDB collection.

    Args:
        connection_string: MongoDB connection string, may name db.collection
        avro_schema_file: Output path for the Avro schema file
        database: Database name (overrides connection string if provided)
        collection: Collection name (overrides connection string if provided)
        sample_size: Number of documents to sample
        query: Extended JSON filter applied before sampling
        type_name: Name of the root record, defaults to the collection name
        avro_namespace: Namespace for generated Avro types
    """
    config = _read_config(connection_string, database, collection, sample_size, query)
    schema = infer_collection_schema(config)
    write_avro_schema(schema, avro_schema_file, type_name or config.collection, avro_namespace)


def convert_mongo_to_struct(
    connection_string: str,
    schema_file: str,
    database: Optional[str] = None,
    collection: Optional[str] = None,
    sample_size: int = 1000,
    query: Optional[str] = None
) -> None:
    """Infers a struct schema from a sampled MongoDB collection and writes it as JSON.

    Args:
        connection_string: MongoDB connection string, may name db.collection
        schema_file: Output path for the schema file
        database: Database name (overrides connection string if provided)
        collection: Collection name (overrides connection string if provided)
        sample_size: Number of documents to sample
        query: Extended JSON filter applied before sampling
    """
    config = _read_config(connection_string, database, collection, sample_size, query)
    schema = infer_collection_schema(config)
    write_struct_schema(schema, schema_file)


def convert_ejson_to_avro(
    input_files: List[str],
    avro_schema_file: str,
    type_name: str = 'Document',
    avro_namespace: str = '',
    sample_size: int = 0
) -> None:
    """Infers an Avro schema from MongoDB Extended JSON files.

    Args:
        input_files: List of Extended JSON file paths to analyze
        avro_schema_file: Output path for the Avro schema
        type_name: Name for the root type
        avro_namespace: Namespace for generated Avro types
        sample_size: Maximum number of documents to sample (0 = all)
    """
    if not input_files:
        raise ValueError("At least one input file is required")
    if sample_size < 0:
        raise ValueError(f"sample_size must not be negative but got {sample_size}")

    documents = load_extended_json_documents(input_files, sample_size)
    if not documents:
        raise ValueError("No documents found in input files")

    schema = infer_schema(documents)
    write_avro_schema(schema, avro_schema_file, type_name, avro_namespace)
